"""End-to-end indexing: scan -> chunk -> embed -> persist."""

from __future__ import annotations

import time
from collections import Counter
from pathlib import Path

import structlog

from code_assistant.config import ProjectConfig
from code_assistant.errors import IndexInitializationError, IndexNotFoundError, NoFilesIndexedError
from code_assistant.ingest.chunker import WordWindowChunker
from code_assistant.ingest.embedder import EmbeddingClient
from code_assistant.ingest.scanner import FileScanner
from code_assistant.retrieval.chunk_store import ChunkStore
from code_assistant.types import Chunk, EmbeddingSource, IndexedFile, IndexResult, IndexStats

_logger = structlog.get_logger()


class ProjectIndexer:
    """Builds a complete index generation for one project.

    Indexing is all-or-nothing: the chunk set and stats are computed in full,
    then written as `chunks.json` and `stats.json`, replacing the previous
    artifacts. Embedding failures never abort a run; they either switch to the
    local fallback vectorizer or leave chunks without embeddings.
    """

    def __init__(
        self,
        config: ProjectConfig,
        *,
        embedding_client: EmbeddingClient | None = None,
    ) -> None:
        self.config = config
        self.embedding_client = embedding_client
        self.scanner = FileScanner(
            config.root_path, config.indexing, skip_paths=[config.paths.output]
        )
        self.chunker = WordWindowChunker(config.indexing)

    def index(self, *, persist: bool = True) -> IndexResult:
        started_at = int(time.time() * 1000)
        files = self.scanner.scan()
        if not files:
            raise NoFilesIndexedError(
                "No files were indexed. Check include_folders: "
                f"{', '.join(self.config.indexing.include_folders)} and include_file_types: "
                f"{', '.join(self.config.indexing.include_file_types)}"
            )

        chunks = self.chunker.chunk_files(files)
        stats = self._stats(files, chunks, started_at)
        stats.embedding_source = self._embed(chunks)

        if persist:
            store = ChunkStore(chunks, stats)
            store.save(self.config.output_path)

        _logger.info(
            "project_indexed",
            files=stats.total_files,
            chunks=stats.total_chunks,
            embedding_source=stats.embedding_source,
        )
        return IndexResult(chunks=chunks, stats=stats)

    def index_into(self, store: ChunkStore) -> IndexStats:
        """Index the project and swap the result into `store`."""
        result = self.index()
        store.replace(result.chunks, result.stats)
        return result.stats

    def _embed(self, chunks: list[Chunk]) -> EmbeddingSource:
        if self.embedding_client is None or not chunks:
            return "none"
        vectors, source = self.embedding_client.embed_chunks([chunk.content for chunk in chunks])
        if vectors is None:
            return "none"
        for chunk, vector in zip(chunks, vectors, strict=True):
            chunk.embedding = vector
        return source

    @staticmethod
    def _stats(files: list[IndexedFile], chunks: list[Chunk], started_at: int) -> IndexStats:
        return IndexStats(
            total_files=len(files),
            total_chunks=len(chunks),
            total_size=sum(f.size for f in files),
            indexed_at=started_at,
            file_types=dict(Counter(f.extension for f in files)),
        )


def load_or_create_index(
    config: ProjectConfig,
    *,
    embedding_client: EmbeddingClient | None = None,
) -> ChunkStore:
    """Load the persisted index, building it first when it does not exist."""
    output = Path(config.output_path)
    try:
        return ChunkStore.load(output)
    except IndexNotFoundError:
        _logger.info("index_missing", directory=str(output))

    try:
        result = ProjectIndexer(config, embedding_client=embedding_client).index()
    except Exception as exc:
        raise IndexInitializationError(f"Failed to create index: {exc}") from exc
    return ChunkStore(result.chunks, result.stats)
