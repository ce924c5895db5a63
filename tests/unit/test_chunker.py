import pytest
from pydantic import ValidationError

from code_assistant.config import IndexingConfig
from code_assistant.ingest.chunker import WordWindowChunker
from code_assistant.types import IndexedFile


def _file(path: str, word_count: int) -> IndexedFile:
    content = " ".join(f"w{i}" for i in range(word_count))
    return IndexedFile(path=path, content=content, extension=".txt", size=len(content), modified=0.0)


def test_thousand_words_yield_three_overlapping_windows() -> None:
    chunker = WordWindowChunker(IndexingConfig(chunk_size=400, chunk_overlap=100))

    chunks = chunker.chunk_file(_file("docs/long.txt", 1000))

    assert len(chunks) == 3
    assert [chunk.content.split()[0] for chunk in chunks] == ["w0", "w300", "w600"]
    assert all(chunk.metadata.total_chunks == 3 for chunk in chunks)
    assert [chunk.metadata.chunk_index for chunk in chunks] == [0, 1, 2]
    assert chunks[-1].content.split()[-1] == "w999"


def test_chunks_minus_overlap_reconstruct_the_file() -> None:
    config = IndexingConfig(chunk_size=50, chunk_overlap=10)
    chunker = WordWindowChunker(config)
    indexed = _file("a.txt", 237)

    chunks = chunker.chunk_file(indexed)

    rebuilt = chunks[0].content.split()
    for chunk in chunks[1:]:
        rebuilt.extend(chunk.content.split()[config.chunk_overlap :])
    assert rebuilt == indexed.content.split()


def test_short_and_empty_files() -> None:
    chunker = WordWindowChunker(IndexingConfig(chunk_size=400, chunk_overlap=100))

    assert len(chunker.chunk_file(_file("short.txt", 12))) == 1
    assert chunker.chunk_file(_file("empty.txt", 0)) == []


def test_chunk_ids_are_unique_across_files_and_reset_per_run() -> None:
    chunker = WordWindowChunker(IndexingConfig(chunk_size=10, chunk_overlap=2))
    files = [_file("a.txt", 25), _file("b.txt", 25)]

    first = chunker.chunk_files(files)
    second = chunker.chunk_files(files)

    ids = [chunk.chunk_id for chunk in first]
    assert len(ids) == len(set(ids))
    assert ids[0] == "chunk_0"
    assert ids == [chunk.chunk_id for chunk in second]
    assert {chunk.metadata.source for chunk in first} == {"a.txt", "b.txt"}


def test_overlap_not_smaller_than_size_is_rejected() -> None:
    with pytest.raises(ValidationError):
        IndexingConfig(chunk_size=100, chunk_overlap=100)

    with pytest.raises(ValueError):
        WordWindowChunker(IndexingConfig.model_construct(chunk_size=10, chunk_overlap=12))
