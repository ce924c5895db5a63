"""Reciprocal rank fusion of keyword and semantic rankings."""

from __future__ import annotations

from code_assistant.config import RetrievalConfig
from code_assistant.types import Chunk


class ReciprocalRankFusion:
    """Combines ranked chunk lists with `sum(1 / (k + rank))`.

    Ranks are 0-based. The fused score is divided by `2 / (k + 2)` for display,
    which keeps typical values within [0, 1]; a chunk ranked first in both
    lists scores slightly above 1.
    """

    def __init__(self, config: RetrievalConfig | None = None) -> None:
        self.config = config or RetrievalConfig()

    @property
    def normalizer(self) -> float:
        return 2.0 / (self.config.rrf_k + 2)

    def fuse(
        self,
        rankings: list[list[Chunk]],
        *,
        limit: int,
    ) -> list[tuple[Chunk, float]]:
        scores: dict[str, float] = {}
        by_id: dict[str, Chunk] = {}
        for ranking in rankings:
            for rank, chunk in enumerate(ranking):
                by_id.setdefault(chunk.chunk_id, chunk)
                scores[chunk.chunk_id] = scores.get(chunk.chunk_id, 0.0) + 1.0 / (
                    self.config.rrf_k + rank
                )

        ordered = sorted(scores.items(), key=lambda item: item[1], reverse=True)
        return [
            (by_id[chunk_id], score / self.normalizer) for chunk_id, score in ordered[:limit]
        ]
