"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass(slots=True)
class IndexedFile:
    """A file admitted during one indexing pass; never persisted."""

    path: str
    content: str
    extension: str
    size: int
    modified: float


@dataclass(slots=True)
class ChunkMetadata:
    source: str
    chunk_index: int
    total_chunks: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "chunkIndex": self.chunk_index,
            "totalChunks": self.total_chunks,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ChunkMetadata":
        return cls(
            source=str(payload["source"]),
            chunk_index=int(payload["chunkIndex"]),
            total_chunks=int(payload["totalChunks"]),
        )


@dataclass(slots=True)
class Chunk:
    """An overlapping word window of one source file."""

    chunk_id: str
    content: str
    metadata: ChunkMetadata
    embedding: list[float] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.chunk_id,
            "content": self.content,
            "metadata": self.metadata.to_dict(),
        }
        if self.embedding is not None:
            payload["embedding"] = self.embedding
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Chunk":
        embedding = payload.get("embedding")
        return cls(
            chunk_id=str(payload["id"]),
            content=str(payload["content"]),
            metadata=ChunkMetadata.from_dict(payload["metadata"]),
            embedding=[float(x) for x in embedding] if embedding is not None else None,
        )


EmbeddingSource = Literal["service", "fallback", "none"]


@dataclass(slots=True)
class IndexStats:
    total_files: int
    total_chunks: int
    total_size: int
    indexed_at: int
    file_types: dict[str, int]
    embedding_source: EmbeddingSource = "none"

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFiles": self.total_files,
            "totalChunks": self.total_chunks,
            "totalSize": self.total_size,
            "indexedAt": self.indexed_at,
            "fileTypes": dict(self.file_types),
            "embeddingSource": self.embedding_source,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "IndexStats":
        return cls(
            total_files=int(payload["totalFiles"]),
            total_chunks=int(payload["totalChunks"]),
            total_size=int(payload["totalSize"]),
            indexed_at=int(payload["indexedAt"]),
            file_types={str(k): int(v) for k, v in payload.get("fileTypes", {}).items()},
            embedding_source=payload.get("embeddingSource", "none"),
        )


@dataclass(slots=True)
class IndexResult:
    chunks: list[Chunk]
    stats: IndexStats


@dataclass(frozen=True, slots=True)
class SearchResult:
    """A ranked retrieval hit; produced fresh per query."""

    content: str
    source: str
    similarity: float
    metadata: ChunkMetadata
    chunk_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.chunk_id,
            "content": self.content,
            "source": self.source,
            "similarity": self.similarity,
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class ToolCallRequest:
    """A tool directive parsed out of a model response."""

    tool_name: str
    tool_input: dict[str, Any] | None
    preceding_text: str = ""


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float


@dataclass(slots=True)
class Message:
    role: Literal["user", "assistant"]
    content: str
    timestamp: float
    sources: list[SearchResult] | None = None


@dataclass(slots=True)
class AnswerWithSources:
    answer: str
    sources: list[SearchResult]
    confidence: float
    category: str
    tools_used: list[str] = field(default_factory=list)
    iterations: int = 0
    trace_id: str | None = None

    @property
    def used_tools(self) -> bool:
        return bool(self.tools_used)

    def to_dict(self) -> dict[str, Any]:
        return {
            "answer": self.answer,
            "sources": [source.to_dict() for source in self.sources],
            "confidence": self.confidence,
            "category": self.category,
            "tools_used": list(self.tools_used),
            "used_tools": self.used_tools,
            "iterations": self.iterations,
            "trace_id": self.trace_id,
        }
