"""In-memory chunk set with JSON persistence and vector similarity search."""

from __future__ import annotations

import json
from math import sqrt
from pathlib import Path

import structlog

from code_assistant.errors import IndexNotFoundError
from code_assistant.types import Chunk, EmbeddingSource, IndexStats

_logger = structlog.get_logger()

CHUNKS_FILE = "chunks.json"
STATS_FILE = "stats.json"


class ChunkStore:
    """Holds one index generation; `replace` swaps the whole chunk set."""

    def __init__(self, chunks: list[Chunk] | None = None, stats: IndexStats | None = None) -> None:
        self._chunks: list[Chunk] = list(chunks or [])
        self._stats = stats

    @property
    def chunks(self) -> list[Chunk]:
        return list(self._chunks)

    @property
    def stats(self) -> IndexStats | None:
        return self._stats

    @property
    def embedding_source(self) -> EmbeddingSource:
        if self._stats is not None:
            return self._stats.embedding_source
        return "service" if self.has_embeddings() else "none"

    def __len__(self) -> int:
        return len(self._chunks)

    def replace(self, chunks: list[Chunk], stats: IndexStats | None = None) -> None:
        dimensions = {len(c.embedding) for c in chunks if c.embedding is not None}
        if len(dimensions) > 1:
            raise ValueError(f"Chunk embeddings have mixed dimensions: {sorted(dimensions)}")
        self._chunks = list(chunks)
        self._stats = stats

    def has_embeddings(self) -> bool:
        return any(chunk.embedding is not None for chunk in self._chunks)

    def semantic_search(self, query_embedding: list[float], k: int) -> list[tuple[Chunk, float]]:
        scored = [
            (chunk, cosine_similarity(query_embedding, chunk.embedding))
            for chunk in self._chunks
            if chunk.embedding is not None
        ]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:k]

    def save(self, directory: str | Path) -> None:
        """Write `chunks.json` and `stats.json`, replacing any previous index."""
        output = Path(directory)
        output.mkdir(parents=True, exist_ok=True)
        (output / CHUNKS_FILE).write_text(
            json.dumps([chunk.to_dict() for chunk in self._chunks], indent=2),
            encoding="utf-8",
        )
        if self._stats is not None:
            (output / STATS_FILE).write_text(
                json.dumps(self._stats.to_dict(), indent=2), encoding="utf-8"
            )
        _logger.info("index_saved", directory=str(output), chunks=len(self._chunks))

    @classmethod
    def load(cls, directory: str | Path) -> "ChunkStore":
        output = Path(directory)
        chunks_path = output / CHUNKS_FILE
        stats_path = output / STATS_FILE
        try:
            raw_chunks = json.loads(chunks_path.read_text(encoding="utf-8"))
            raw_stats = (
                json.loads(stats_path.read_text(encoding="utf-8")) if stats_path.exists() else None
            )
            chunks = [Chunk.from_dict(item) for item in raw_chunks]
            stats = IndexStats.from_dict(raw_stats) if raw_stats is not None else None
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise IndexNotFoundError(f"Could not load index from {output}: {exc}") from exc

        store = cls()
        store.replace(chunks, stats)
        return store


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)
