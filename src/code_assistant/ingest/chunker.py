"""Sliding word-window chunking."""

from __future__ import annotations

from collections.abc import Iterator
from itertools import count

from code_assistant.config import IndexingConfig
from code_assistant.types import Chunk, ChunkMetadata, IndexedFile


class WordWindowChunker:
    """Splits whitespace-tokenized file content into overlapping windows.

    Windows hold `chunk_size` words and start every `chunk_size -
    chunk_overlap` words. The last window is the first one that reaches the
    end of the file, so a 1000-word file with size 400 and overlap 100 yields
    windows at offsets 0, 300 and 600.

    Chunk ids come from a counter shared by every file in one indexing run,
    which keeps them unique within an index generation.
    """

    def __init__(self, config: IndexingConfig | None = None) -> None:
        self.config = config or IndexingConfig()
        if self.config.chunk_overlap >= self.config.chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")
        self.stride = self.config.chunk_size - self.config.chunk_overlap

    def chunk_files(self, files: list[IndexedFile]) -> list[Chunk]:
        ids = count()
        chunks: list[Chunk] = []
        for indexed in files:
            chunks.extend(self.chunk_file(indexed, ids))
        return chunks

    def chunk_file(self, indexed: IndexedFile, ids: Iterator[int] | None = None) -> list[Chunk]:
        ids = ids if ids is not None else count()
        windows = list(self.windows(indexed.content.split()))
        total = len(windows)
        return [
            Chunk(
                chunk_id=f"chunk_{next(ids)}",
                content=" ".join(words),
                metadata=ChunkMetadata(source=indexed.path, chunk_index=i, total_chunks=total),
            )
            for i, words in enumerate(windows)
        ]

    def windows(self, words: list[str]) -> Iterator[list[str]]:
        size = self.config.chunk_size
        start = 0
        while start < len(words):
            yield words[start : start + size]
            if start + size >= len(words):
                break
            start += self.stride
