import json

import httpx
import pytest
from structlog.testing import capture_logs

from code_assistant.config import EmbeddingConfig
from code_assistant.errors import EmbeddingError
from code_assistant.ingest.embedder import EmbeddingClient, OllamaEmbedder, VocabularyEmbedder


def _embedder(handler, **overrides) -> tuple[OllamaEmbedder, list[float]]:
    config = EmbeddingConfig(enabled=True, request_delay_seconds=0.01, **overrides)
    client = httpx.Client(base_url="http://embed.test", transport=httpx.MockTransport(handler))
    pauses: list[float] = []
    return OllamaEmbedder(config, client=client, sleep=pauses.append), pauses


def test_documents_are_sent_one_per_request() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        assert request.url.path == "/api/embed"
        return httpx.Response(200, json={"embeddings": [[float(len(body["input"][0])), 1.0]]})

    embedder, pauses = _embedder(handler)

    vectors = embedder.embed_documents(["a", "bb", "ccc"])

    assert vectors == [[1.0, 1.0], [2.0, 1.0], [3.0, 1.0]]
    assert [body["input"] for body in seen] == [["a"], ["bb"], ["ccc"]]
    assert all(body["model"] == "nomic-embed-text" for body in seen)
    assert pauses == [0.01, 0.01]


@pytest.mark.parametrize(
    ("status", "body"),
    [
        (500, {"text": "boom"}),
        (200, {"text": "not json"}),
        (200, {"json": {"embeddings": []}}),
        (200, {"json": {"embeddings": [None]}}),
        (200, {"json": {"embeddings": [["x", "y"]]}}),
        (200, {"json": {"embeddings": [[]]}}),
        (200, {"json": {"embeddings": [[1.0, True]]}}),
    ],
)
def test_bad_responses_raise_embedding_error(status: int, body: dict) -> None:
    embedder, _ = _embedder(lambda request: httpx.Response(status, **body))

    with pytest.raises(EmbeddingError):
        embedder.embed_query("hello")
    with pytest.raises(EmbeddingError):
        embedder.embed_documents(["hello", "world"])


def test_malformed_vectors_leave_chunks_unembedded() -> None:
    embedder, _ = _embedder(lambda request: httpx.Response(200, json={"embeddings": [None]}))

    vectors, source = EmbeddingClient(embedder).embed_chunks(["hello world"])

    assert vectors is None
    assert source == "none"


def test_transport_failure_raises_embedding_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    embedder, _ = _embedder(handler)

    with pytest.raises(EmbeddingError):
        embedder.embed_documents(["x"])


def test_client_without_fallback_omits_embeddings_on_failure() -> None:
    embedder, _ = _embedder(lambda request: httpx.Response(500))
    client = EmbeddingClient(embedder)

    with capture_logs() as logs:
        vectors, source = client.embed_chunks(["alpha", "beta"])

    assert vectors is None
    assert source == "none"
    assert any(
        entry["event"] == "embeddings_unavailable" and entry["log_level"] == "warning"
        for entry in logs
    )


def test_client_fallback_embeds_whole_batch_locally() -> None:
    embedder, _ = _embedder(lambda request: httpx.Response(503))
    client = EmbeddingClient(embedder, fallback=VocabularyEmbedder(dimension=16))

    vectors, source = client.embed_chunks(["token refresh logic", "session cache layer"])

    assert source == "fallback"
    assert vectors is not None
    assert len(vectors) == 2
    assert all(len(vector) == 16 for vector in vectors)
    query = client.embed_query("token refresh", "fallback")
    assert len(query) == 16


def test_from_config_respects_enabled_flag() -> None:
    assert EmbeddingClient.from_config(EmbeddingConfig(enabled=False)) is None

    client = EmbeddingClient.from_config(EmbeddingConfig(enabled=True, fallback=True))
    assert client is not None
    assert isinstance(client.fallback, VocabularyEmbedder)


def test_vocabulary_embedder_refit_reproduces_vectors() -> None:
    texts = ["parse config files", "config loader reads json", "retry http requests"]
    first = VocabularyEmbedder(dimension=8)
    second = VocabularyEmbedder(dimension=8)
    first.fit(texts)
    second.fit(list(texts))

    assert first.embed_documents(texts) == second.embed_documents(texts)
    assert first.embed_query("config") == second.embed_query("config")
    assert sum(value * value for value in first.embed_query("config")) == pytest.approx(1.0)
    assert first.embed_query("unknown words only") == [0.0] * 8
