"""Embedding abstractions, the remote embedding client and its local fallback."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Callable
from math import sqrt
from typing import Any

import httpx
import structlog

from code_assistant.config import EmbeddingConfig
from code_assistant.errors import EmbeddingError
from code_assistant.retrieval.keyword import tokenize
from code_assistant.types import Chunk, EmbeddingSource

_logger = structlog.get_logger()


class Embedder(ABC):
    """Embedder interface used by ingest and retrieval components."""

    @abstractmethod
    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed many documents."""

    @abstractmethod
    def embed_query(self, text: str) -> list[float]:
        """Embed one query."""


class OllamaEmbedder(Embedder):
    """Calls an `/api/embed` endpoint: `{model, input[]}` -> `{embeddings[][]}`.

    Documents are sent one per request with a short pause in between so a
    local inference server is not flooded during indexing. Every failure
    surfaces as `EmbeddingError`.
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        *,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._client = client or httpx.Client(base_url=config.base_url.rstrip("/"))
        self._sleep = sleep

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for i, text in enumerate(texts):
            if i and self.config.request_delay_seconds:
                self._sleep(self.config.request_delay_seconds)
            vectors.append(self._request([text])[0])

        dimensions = {len(vector) for vector in vectors}
        if len(dimensions) > 1:
            raise EmbeddingError(f"Inconsistent embedding dimensions: {sorted(dimensions)}")
        return vectors

    def embed_query(self, text: str) -> list[float]:
        return self._request([text])[0]

    def _request(self, inputs: list[str]) -> list[list[float]]:
        try:
            response = self._client.post(
                "/api/embed",
                json={"model": self.config.model, "input": inputs},
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
            data: Any = response.json()
        except httpx.HTTPStatusError as exc:
            raise EmbeddingError(
                f"HTTP {exc.response.status_code}: {exc.response.reason_phrase}"
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc
        except ValueError as exc:
            raise EmbeddingError("Embedding response is not valid JSON") from exc

        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        if not isinstance(embeddings, list) or len(embeddings) != len(inputs):
            raise EmbeddingError("Embedding response does not match the request size")
        try:
            return [_as_vector(vector) for vector in embeddings]
        except (TypeError, ValueError) as exc:
            raise EmbeddingError(f"Embedding response holds a malformed vector: {exc}") from exc


class VocabularyEmbedder(Embedder):
    """Term-frequency vectors over a vocabulary folded into a fixed width.

    The vocabulary is built from the whole chunk set (most frequent terms
    first), and each term's position is folded modulo `dimension`. Refitting on
    the same chunk set reproduces the same vector space, which lets a loaded
    index embed queries compatibly with the vectors stored at indexing time.
    """

    def __init__(self, dimension: int = 256) -> None:
        self.dimension = dimension
        self._slots: dict[str, int] = {}

    @property
    def fitted(self) -> bool:
        return bool(self._slots)

    def fit(self, texts: list[str]) -> None:
        doc_freq: Counter[str] = Counter()
        for text in texts:
            doc_freq.update(set(tokenize(text)))
        ordered = sorted(doc_freq, key=lambda term: (-doc_freq[term], term))
        self._slots = {term: i % self.dimension for i, term in enumerate(ordered)}

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not self.fitted:
            self.fit(texts)
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)

    def _embed(self, text: str) -> list[float]:
        vector = [0.0 for _ in range(self.dimension)]
        for token, freq in Counter(tokenize(text)).items():
            slot = self._slots.get(token)
            if slot is not None:
                vector[slot] += freq

        norm = sqrt(sum(value * value for value in vector))
        if norm == 0:
            return vector
        return [value / norm for value in vector]


class EmbeddingClient:
    """Remote embedder plus optional local fallback.

    An index is embedded entirely by the service or entirely by the fallback,
    never a mix: a single failed request discards every service vector of the
    run.
    """

    def __init__(self, remote: Embedder, *, fallback: VocabularyEmbedder | None = None) -> None:
        self.remote = remote
        self.fallback = fallback

    @classmethod
    def from_config(cls, config: EmbeddingConfig) -> "EmbeddingClient | None":
        if not config.enabled:
            return None
        fallback = VocabularyEmbedder(config.fallback_dimension) if config.fallback else None
        return cls(OllamaEmbedder(config), fallback=fallback)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return self.remote.embed_documents(texts)

    def embed_chunks(self, texts: list[str]) -> tuple[list[list[float]] | None, EmbeddingSource]:
        if not texts:
            return None, "none"
        try:
            vectors = self.embed_batch(texts)
        except EmbeddingError as exc:
            if self.fallback is None:
                _logger.warning("embeddings_unavailable", error=str(exc), chunks=len(texts))
                return None, "none"
            _logger.warning("embeddings_fallback", error=str(exc), chunks=len(texts))
            self.fallback.fit(texts)
            return self.fallback.embed_documents(texts), "fallback"

        _logger.info("embeddings_generated", count=len(vectors))
        return vectors, "service"

    def prepare(self, chunks: list[Chunk], source: EmbeddingSource) -> None:
        """Rebuild fallback state for a loaded index."""
        if source == "fallback" and self.fallback is not None:
            self.fallback.fit([chunk.content for chunk in chunks])

    def embed_query(self, text: str, source: EmbeddingSource) -> list[float]:
        if source == "fallback":
            if self.fallback is None:
                raise EmbeddingError("Index was embedded by the fallback vectorizer, which is disabled")
            return self.fallback.embed_query(text)
        return self.remote.embed_query(text)


def _as_vector(raw: Any) -> list[float]:
    if not isinstance(raw, list) or not raw:
        raise TypeError(f"expected a non-empty list of numbers, got {type(raw).__name__}")
    if any(isinstance(x, bool) or not isinstance(x, (int, float)) for x in raw):
        raise ValueError("vector contains non-numeric values")
    return [float(x) for x in raw]
