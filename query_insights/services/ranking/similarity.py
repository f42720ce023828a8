"""Similarity provider adapter and vector math.

The core only consumes vectors. Fetching them goes through a
``SimilarityProvider``; any failure there yields ``None`` vectors so scoring
and clustering degrade to neutral values instead of failing the run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

import httpx
import numpy as np

from query_insights.core.exceptions import QueryInsightsError
from query_insights.integrations.cache import (
    EMBEDDING_CACHE_PREFIX,
    EmbeddingCache,
    generate_cache_key,
)
from query_insights.integrations.embeddings import EmbeddingsClient
from query_insights.schemas.query import CompanyProfile, QueryRecord

logger = logging.getLogger(__name__)

Vector = list[float]


class SimilarityProvider(Protocol):
    """Embedding capability consumed by the core."""

    async def embed(self, texts: list[str]) -> list[Vector | None]: ...

    async def embed_one(self, text: str) -> Vector | None: ...


def cosine_similarity(vec1: Sequence[float] | None, vec2: Sequence[float] | None) -> float:
    """Cosine similarity; 0.0 for empty, zero-norm or mismatched vectors."""
    if not vec1 or not vec2 or len(vec1) != len(vec2):
        return 0.0

    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    value = float(np.dot(a, b) / (norm_a * norm_b))
    if not np.isfinite(value):
        return 0.0
    return max(-1.0, min(1.0, value))


def rescale_cosine(value: float) -> float:
    """Map a cosine in [-1, 1] onto [0, 1]."""
    return max(0.0, min(1.0, (value + 1.0) / 2.0))


class EmbeddingSimilarityAdapter:
    """SimilarityProvider over EmbeddingsClient with an optional cache."""

    def __init__(
        self,
        client_factory: Callable[[], EmbeddingsClient] = EmbeddingsClient,
        cache: EmbeddingCache | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._cache = cache

    async def embed(self, texts: list[str]) -> list[Vector | None]:
        """Embed texts, returning vectors aligned with the input (None on failure)."""
        vectors: list[Vector | None] = [None] * len(texts)
        if not texts:
            return vectors

        missing: dict[str, list[int]] = {}
        for index, text in enumerate(texts):
            cached = None
            if self._cache is not None:
                cached = await self._cache.get(generate_cache_key(EMBEDDING_CACHE_PREFIX, text))
            if cached:
                vectors[index] = cached
            else:
                missing.setdefault(text, []).append(index)

        logger.info(
            "Embedding lookup",
            extra={"cached": len(texts) - sum(len(v) for v in missing.values()), "to_fetch": len(missing)},
        )
        if not missing:
            return vectors

        pending = list(missing)
        try:
            async with self._client_factory() as client:
                fetched = await client.get_embeddings(pending)
        except (QueryInsightsError, httpx.HTTPError) as e:
            logger.warning(
                "Embeddings unavailable, using neutral similarity",
                extra={"text_count": len(pending), "error": str(e)},
            )
            return vectors

        for text, vector in zip(pending, fetched):
            if not vector:
                continue
            for index in missing[text]:
                vectors[index] = list(vector)
            if self._cache is not None:
                await self._cache.set(generate_cache_key(EMBEDDING_CACHE_PREFIX, text), list(vector))

        return vectors

    async def embed_one(self, text: str) -> Vector | None:
        if not text:
            return None
        return (await self.embed([text]))[0]


async def embed_records(
    records: list[QueryRecord],
    provider: SimilarityProvider | None,
) -> list[QueryRecord]:
    """Attach vectors to records that lack one, keyed by normalized text."""
    if provider is None:
        return list(records)

    pending = [i for i, r in enumerate(records) if not r.has_vector]
    if not pending:
        return list(records)

    try:
        vectors = await provider.embed([records[i].text_normalized for i in pending])
    except Exception as e:
        logger.warning("Similarity provider failed", extra={"error": str(e)})
        return list(records)

    updated = list(records)
    for i, vector in zip(pending, vectors):
        if vector:
            updated[i] = records[i].model_copy(update={"semantic_vector": list(vector)})
    return updated


async def resolve_company_reference(
    reference: Sequence[float] | CompanyProfile | str | None,
    provider: SimilarityProvider | None,
) -> Vector | None:
    """Turn a vector, profile or raw text into the company reference vector."""
    if reference is None:
        return None
    if isinstance(reference, CompanyProfile | str):
        text = reference.reference_text() if isinstance(reference, CompanyProfile) else reference
        if provider is None or not text.strip():
            return None
        try:
            return await provider.embed_one(text)
        except Exception as e:
            logger.warning("Company reference embedding failed", extra={"error": str(e)})
            return None
    vector = [float(x) for x in reference]
    return vector or None
