"""Unit tests for vector math and the similarity provider adapter."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from query_insights.core.exceptions import APIKeyMissingError, ExternalAPIError
from query_insights.integrations.cache import (
    EMBEDDING_CACHE_PREFIX,
    InMemoryEmbeddingCache,
    generate_cache_key,
)
from query_insights.schemas.query import CompanyProfile, QueryRecord
from query_insights.services.ranking.similarity import (
    EmbeddingSimilarityAdapter,
    cosine_similarity,
    embed_records,
    rescale_cosine,
    resolve_company_reference,
)


class _FakeEmbeddingsClient:
    """Async context manager mimicking EmbeddingsClient."""

    def __init__(self, vectors: dict[str, list[float]], calls: list[list[str]]) -> None:
        self._vectors = vectors
        self._calls = calls

    async def __aenter__(self) -> "_FakeEmbeddingsClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        return None

    async def get_embeddings(self, texts: list[str]) -> list[list[float]]:
        self._calls.append(list(texts))
        return [self._vectors[t] for t in texts]


class _FailingEmbeddingsClient(_FakeEmbeddingsClient):
    def __init__(self, error: Exception) -> None:
        super().__init__({}, [])
        self._error = error

    async def get_embeddings(self, texts: list[str]) -> list[list[float]]:
        raise self._error


def test_cosine_similarity_handles_degenerate_vectors() -> None:
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0
    assert cosine_similarity([], [1.0]) == 0.0
    assert cosine_similarity(None, [1.0]) == 0.0


def test_rescale_cosine_maps_to_unit_interval() -> None:
    assert rescale_cosine(-1.0) == 0.0
    assert rescale_cosine(0.0) == 0.5
    assert rescale_cosine(1.0) == 1.0


@pytest.mark.asyncio
async def test_adapter_uses_cache_and_fetches_only_misses() -> None:
    cache = InMemoryEmbeddingCache(ttl_seconds=60)
    await cache.set(generate_cache_key(EMBEDDING_CACHE_PREFIX, "cached"), [9.0, 9.0])
    calls: list[list[str]] = []
    vectors = {"fresh": [1.0, 2.0], "other": [3.0, 4.0]}

    adapter = EmbeddingSimilarityAdapter(
        client_factory=lambda: _FakeEmbeddingsClient(vectors, calls),
        cache=cache,
    )
    result = await adapter.embed(["fresh", "cached", "other", "fresh"])

    assert result == [[1.0, 2.0], [9.0, 9.0], [3.0, 4.0], [1.0, 2.0]]
    assert calls == [["fresh", "other"]]
    assert await cache.get(generate_cache_key(EMBEDDING_CACHE_PREFIX, "fresh")) == [1.0, 2.0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        ExternalAPIError("OpenRouter Embeddings", "boom"),
        httpx.ConnectError("unreachable"),
    ],
)
async def test_adapter_degrades_to_none_when_collaborator_fails(error: Exception) -> None:
    adapter = EmbeddingSimilarityAdapter(client_factory=lambda: _FailingEmbeddingsClient(error))

    assert await adapter.embed(["a", "b"]) == [None, None]
    assert await adapter.embed_one("a") is None


@pytest.mark.asyncio
async def test_adapter_degrades_when_api_key_missing() -> None:
    def factory() -> _FakeEmbeddingsClient:
        raise APIKeyMissingError("OpenRouter (for embeddings)")

    adapter = EmbeddingSimilarityAdapter(client_factory=factory)

    assert await adapter.embed(["a"]) == [None]


@pytest.mark.asyncio
async def test_embed_records_keeps_existing_vectors_and_aligns_by_index() -> None:
    calls: list[list[str]] = []
    adapter = EmbeddingSimilarityAdapter(
        client_factory=lambda: _FakeEmbeddingsClient({"b": [0.0, 1.0]}, calls),
    )
    records = [
        QueryRecord(text_original="a", text_normalized="a", semantic_vector=[1.0, 0.0]),
        QueryRecord(text_original="b", text_normalized="b"),
    ]

    embedded = await embed_records(records, adapter)

    assert calls == [["b"]]
    assert embedded[0].semantic_vector == [1.0, 0.0]
    assert embedded[1].semantic_vector == [0.0, 1.0]
    assert records[1].semantic_vector is None


@pytest.mark.asyncio
async def test_embed_records_without_provider_returns_records_unchanged() -> None:
    records = [QueryRecord(text_original="a", text_normalized="a")]

    assert await embed_records(records, None) == records


@pytest.mark.asyncio
async def test_resolve_company_reference_embeds_profile_text() -> None:
    calls: list[list[str]] = []
    profile = CompanyProfile(name="Gymshark", products=["leggings"], categories=["activewear"])
    adapter = EmbeddingSimilarityAdapter(
        client_factory=lambda: _FakeEmbeddingsClient(
            {"Gymshark leggings activewear": [0.5, 0.5]}, calls
        ),
    )

    assert await resolve_company_reference(profile, adapter) == [0.5, 0.5]
    assert await resolve_company_reference([1, 2], None) == [1.0, 2.0]
    assert await resolve_company_reference(profile, None) is None
    assert await resolve_company_reference(None, adapter) is None
