"""Tests for the embedding provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from gutenberg_search.config import Settings
from gutenberg_search.embeddings import EmbeddingProvider, book_embedding_text
from gutenberg_search.errors import ConfigurationError, EmbeddingError
from gutenberg_search.storage import BookRecord


# ---------------------------------------------------------------------------
# Mock helpers
# ---------------------------------------------------------------------------


@dataclass
class _FakeEmbedding:
    values: list[float]


@dataclass
class _FakeEmbedResult:
    embeddings: list[_FakeEmbedding]


class _FakeModels:
    """Records calls and returns deterministic embeddings."""

    def __init__(self, *, dim_override: int | None = None, error: Exception | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.dim_override = dim_override
        self.error = error

    async def embed_content(
        self, *, model: str, contents: list[str], config: dict
    ) -> _FakeEmbedResult:
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        dim = self.dim_override or config.get("output_dimensionality", 768)
        return _FakeEmbedResult(
            embeddings=[
                _FakeEmbedding(values=[float(i)] * dim) for i in range(len(contents))
            ]
        )


class _FakeAio:
    def __init__(self, models: _FakeModels) -> None:
        self.models = models


class _FakeClient:
    def __init__(self, **kwargs: Any) -> None:
        self.aio = _FakeAio(_FakeModels(**kwargs))

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self.aio.models.calls


def _book() -> BookRecord:
    return BookRecord(
        gutenberg_id=1533,
        title="Macbeth",
        author="Shakespeare, William",
        description="An English work by Shakespeare, William.",
    )


# ---------------------------------------------------------------------------
# Unit tests (mock-based, no API key needed)
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_embed_texts_returns_correct_count() -> None:
    client = _FakeClient()
    provider = EmbeddingProvider(client=client, dim=4, batch_size=50)

    embeddings = await provider.embed_texts(["hello", "world"])

    assert len(embeddings) == 2
    assert len(embeddings[0]) == 4


@pytest.mark.asyncio
async def test_embed_texts_uses_document_task_type() -> None:
    client = _FakeClient()
    provider = EmbeddingProvider(client=client, dim=4)

    await provider.embed_texts(["test"])

    call = client.calls[0]
    assert call["config"]["task_type"] == "RETRIEVAL_DOCUMENT"
    assert call["config"]["output_dimensionality"] == 4


@pytest.mark.asyncio
async def test_embed_query_uses_query_task_type() -> None:
    client = _FakeClient()
    provider = EmbeddingProvider(client=client, dim=4)

    vector = await provider.embed_query("a murdered Scottish king")

    assert len(vector) == 4
    assert client.calls[0]["config"]["task_type"] == "RETRIEVAL_QUERY"
    assert client.calls[0]["contents"] == ["a murdered Scottish king"]


@pytest.mark.asyncio
async def test_embed_texts_batches_requests() -> None:
    client = _FakeClient()
    provider = EmbeddingProvider(client=client, dim=2, batch_size=2)

    embeddings = await provider.embed_texts(["a", "b", "c", "d", "e"])

    assert len(embeddings) == 5
    assert [len(call["contents"]) for call in client.calls] == [2, 2, 1]


@pytest.mark.asyncio
async def test_embed_book_uses_title_author_and_description() -> None:
    client = _FakeClient()
    provider = EmbeddingProvider(client=client, dim=4)

    await provider.embed_book(_book())

    assert client.calls[0]["contents"] == [
        "Macbeth by Shakespeare, William. An English work by Shakespeare, William."
    ]
    assert book_embedding_text(_book()).startswith("Macbeth by Shakespeare")


@pytest.mark.asyncio
async def test_empty_text_is_rejected_before_any_request() -> None:
    client = _FakeClient()
    provider = EmbeddingProvider(client=client, dim=4)

    with pytest.raises(ValueError):
        await provider.embed_query("   ")

    assert client.calls == []


@pytest.mark.asyncio
async def test_provider_failure_is_wrapped() -> None:
    client = _FakeClient(error=RuntimeError("quota exceeded"))
    provider = EmbeddingProvider(client=client, dim=4)

    with pytest.raises(EmbeddingError, match="quota exceeded"):
        await provider.embed_query("whales")


@pytest.mark.asyncio
async def test_wrong_dimension_is_rejected() -> None:
    client = _FakeClient(dim_override=3)
    provider = EmbeddingProvider(client=client, dim=4)

    with pytest.raises(EmbeddingError, match="expected 4"):
        await provider.embed_query("whales")


def test_missing_api_key_raises(monkeypatch) -> None:
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

    with pytest.raises(ConfigurationError, match="GOOGLE_API_KEY"):
        EmbeddingProvider()


def test_from_settings_copies_model_configuration() -> None:
    settings = Settings(
        google_api_key="test-key",
        embedding_model="custom-model",
        embedding_dim=8,
        embedding_batch_size=3,
    )

    provider = EmbeddingProvider.from_settings(settings, client=_FakeClient())

    assert provider.model == "custom-model"
    assert provider.dim == 8
    assert provider.batch_size == 3


def test_from_settings_requires_api_key_without_client() -> None:
    with pytest.raises(ConfigurationError):
        EmbeddingProvider.from_settings(Settings(google_api_key=None))
