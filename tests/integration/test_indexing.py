import json

import httpx
import pytest
from structlog.testing import capture_logs

from code_assistant.config import EmbeddingConfig, IndexingConfig, PathsConfig, ProjectConfig
from code_assistant.errors import IndexInitializationError, NoFilesIndexedError
from code_assistant.ingest.embedder import EmbeddingClient, OllamaEmbedder, VocabularyEmbedder
from code_assistant.ingest.pipeline import ProjectIndexer, load_or_create_index
from code_assistant.retrieval.chunk_store import ChunkStore
from code_assistant.retrieval.retriever import HybridRetriever


def _project(tmp_path, **indexing) -> ProjectConfig:
    src = tmp_path / "src"
    src.mkdir(exist_ok=True)
    (src / "long.txt").write_text(" ".join(f"w{i}" for i in range(1000)), encoding="utf-8")
    (src / "auth.py").write_text(
        "def authenticate(user):\n    # Authentication flow uses JWT tokens\n    return sign(user)\n",
        encoding="utf-8",
    )
    (src / "skip.bin").write_text("ignored", encoding="utf-8")
    return ProjectConfig(
        project_name="demo",
        paths=PathsConfig(root=str(tmp_path)),
        indexing=IndexingConfig(
            include_folders=["src"],
            include_file_types=[".txt", ".py"],
            **indexing,
        ),
    )


def _remote(handler) -> OllamaEmbedder:
    client = httpx.Client(base_url="http://embed.test", transport=httpx.MockTransport(handler))
    return OllamaEmbedder(
        EmbeddingConfig(enabled=True, request_delay_seconds=0.0), client=client, sleep=lambda _: None
    )


def test_index_writes_chunks_and_stats(tmp_path) -> None:
    config = _project(tmp_path)

    result = ProjectIndexer(config).index()

    long_chunks = [c for c in result.chunks if c.metadata.source == "src/long.txt"]
    assert len(long_chunks) == 3
    assert all(c.metadata.total_chunks == 3 for c in long_chunks)
    assert result.stats.total_files == 2
    assert result.stats.total_chunks == 4
    assert result.stats.file_types == {".py": 1, ".txt": 1}
    assert result.stats.embedding_source == "none"

    saved_chunks = json.loads((tmp_path / ".code-assistant" / "chunks.json").read_text())
    saved_stats = json.loads((tmp_path / ".code-assistant" / "stats.json").read_text())
    assert len(saved_chunks) == 4
    assert set(saved_chunks[0]) == {"id", "content", "metadata"}
    assert saved_stats["totalChunks"] == 4


def test_reindexing_unchanged_tree_is_idempotent(tmp_path) -> None:
    config = _project(tmp_path)
    indexer = ProjectIndexer(config)

    first = indexer.index()
    second = indexer.index()

    assert [c.content for c in first.chunks] == [c.content for c in second.chunks]
    assert [c.metadata.total_chunks for c in first.chunks] == [
        c.metadata.total_chunks for c in second.chunks
    ]
    assert [c.chunk_id for c in first.chunks] == [c.chunk_id for c in second.chunks]
    assert second.stats.total_files == 2


def test_no_admitted_files_fails_fast(tmp_path) -> None:
    config = _project(tmp_path, exclude_patterns=["*.txt", "*.py"])

    with pytest.raises(NoFilesIndexedError):
        ProjectIndexer(config).index()


def test_embedding_service_error_leaves_chunks_unembedded(tmp_path) -> None:
    config = _project(tmp_path)
    client = EmbeddingClient(_remote(lambda request: httpx.Response(500, text="boom")))

    with capture_logs() as logs:
        result = ProjectIndexer(config, embedding_client=client).index()

    assert result.stats.total_chunks == 4
    assert all(chunk.embedding is None for chunk in result.chunks)
    assert result.stats.embedding_source == "none"
    assert any(
        entry["event"] == "embeddings_unavailable" and entry["log_level"] == "warning"
        for entry in logs
    )
    retriever = HybridRetriever(ChunkStore(result.chunks, result.stats), client)
    assert retriever.is_semantic_search_available() is False


def test_service_embeddings_are_stored_and_searched(tmp_path) -> None:
    config = _project(tmp_path)

    def handler(request: httpx.Request) -> httpx.Response:
        text = json.loads(request.content)["input"][0]
        vector = [1.0, 0.0] if "JWT" in text or "token" in text else [0.0, 1.0]
        return httpx.Response(200, json={"embeddings": [vector]})

    client = EmbeddingClient(_remote(handler))
    ProjectIndexer(config, embedding_client=client).index()

    store = load_or_create_index(config, embedding_client=client)
    retriever = HybridRetriever(store, client, config.retrieval)
    results = retriever.search("JWT token validation", max_results=2)

    assert store.embedding_source == "service"
    assert all(len(chunk.embedding or []) == 2 for chunk in store.chunks)
    assert retriever.is_semantic_search_available() is True
    assert results[0].source == "src/auth.py"


def test_fallback_index_is_pure_and_reloadable(tmp_path) -> None:
    config = _project(tmp_path)
    calls = {"n": 0}

    def flaky(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] > 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"embeddings": [[1.0, 2.0, 3.0]]})

    client = EmbeddingClient(_remote(flaky), fallback=VocabularyEmbedder(dimension=32))
    result = ProjectIndexer(config, embedding_client=client).index()

    assert result.stats.embedding_source == "fallback"
    assert {len(chunk.embedding or []) for chunk in result.chunks} == {32}

    reloaded_client = EmbeddingClient(_remote(flaky), fallback=VocabularyEmbedder(dimension=32))
    store = load_or_create_index(config, embedding_client=reloaded_client)
    retriever = HybridRetriever(store, reloaded_client)
    assert retriever.is_semantic_search_available() is True
    assert retriever.search("authentication jwt")[0].source == "src/auth.py"


def test_load_or_create_index_builds_missing_index_once(tmp_path) -> None:
    config = _project(tmp_path)

    created = load_or_create_index(config)
    (tmp_path / "src" / "extra.py").write_text("def extra(): pass", encoding="utf-8")
    loaded = load_or_create_index(config)

    assert len(created) == 4
    assert len(loaded) == 4


def test_load_or_create_index_wraps_failures(tmp_path) -> None:
    config = ProjectConfig(
        paths=PathsConfig(root=str(tmp_path)),
        indexing=IndexingConfig(include_folders=["missing"]),
    )

    with pytest.raises(IndexInitializationError):
        load_or_create_index(config)
