"""Hybrid keyword + semantic retriever."""

from __future__ import annotations

import structlog

from code_assistant.config import RetrievalConfig
from code_assistant.errors import EmbeddingError
from code_assistant.ingest.embedder import EmbeddingClient
from code_assistant.retrieval.chunk_store import ChunkStore
from code_assistant.retrieval.fusion import ReciprocalRankFusion
from code_assistant.retrieval.keyword import KeywordScorer
from code_assistant.types import Chunk, SearchResult

_logger = structlog.get_logger()


class HybridRetriever:
    """Ranks chunks by keyword score, fused with cosine similarity when possible.

    Keyword scoring always runs. When the store carries embeddings and an
    embedding client is configured, both rankings are cut to
    `candidate_multiplier * max_results` candidates and merged with reciprocal
    rank fusion, so fused hits always come from one of the two shortlists. Any
    embedding failure degrades to the keyword ranking.
    """

    def __init__(
        self,
        store: ChunkStore,
        embedding_client: EmbeddingClient | None = None,
        config: RetrievalConfig | None = None,
        fusion: ReciprocalRankFusion | None = None,
    ) -> None:
        self.store = store
        self.embedding_client = embedding_client
        self.config = config or RetrievalConfig()
        self.fusion = fusion or ReciprocalRankFusion(self.config)
        self._keyword = KeywordScorer()
        self.refresh()

    def refresh(self) -> None:
        """Re-read the store after its chunk set was replaced."""
        chunks = self.store.chunks
        self._keyword.set_chunks(chunks)
        if self.embedding_client is not None:
            self.embedding_client.prepare(chunks, self.store.embedding_source)

    def is_semantic_search_available(self) -> bool:
        return self.embedding_client is not None and self.store.has_embeddings()

    def search(self, query: str, max_results: int | None = None) -> list[SearchResult]:
        limit = self.config.max_results if max_results is None else max_results
        if limit <= 0 or len(self.store) == 0:
            return []

        client = self.embedding_client
        if client is None or not self.store.has_embeddings():
            return [_to_result(chunk, score) for chunk, score in self._keyword.rank(query, limit)]

        candidates = limit * self.config.candidate_multiplier
        keyword_ranked = self._keyword.rank(query, candidates)
        semantic_ranked = self._semantic_rank(client, query, candidates)
        if semantic_ranked is None:
            return [_to_result(chunk, score) for chunk, score in keyword_ranked[:limit]]

        fused = self.fusion.fuse(
            [
                [chunk for chunk, _ in keyword_ranked],
                [chunk for chunk, _ in semantic_ranked],
            ],
            limit=limit,
        )
        return [_to_result(chunk, score) for chunk, score in fused]

    def _semantic_rank(
        self, client: EmbeddingClient, query: str, k: int
    ) -> list[tuple[Chunk, float]] | None:
        try:
            query_embedding = client.embed_query(query, self.store.embedding_source)
        except EmbeddingError as exc:
            _logger.warning("semantic_search_degraded", error=str(exc))
            return None
        return self.store.semantic_search(query_embedding, k)


def format_context(results: list[SearchResult]) -> str:
    """Render results as numbered, citable context blocks."""
    blocks = []
    for i, result in enumerate(results, start=1):
        blocks.append(f"[{i}] Source: {result.source}\nContent: {result.content}\n---")
    return "\n".join(blocks)


def _to_result(chunk: Chunk, score: float) -> SearchResult:
    return SearchResult(
        content=chunk.content,
        source=chunk.metadata.source,
        similarity=score,
        metadata=chunk.metadata,
        chunk_id=chunk.chunk_id,
    )
