"""Embeddings integration for query similarity.

Calls the OpenRouter embeddings endpoint; vectors are returned in input order.
"""

import logging
from typing import Any

import httpx

from query_insights.config import settings
from query_insights.core.exceptions import (
    APIKeyMissingError,
    ExternalAPIError,
    RateLimitExceededError,
)

logger = logging.getLogger(__name__)


class EmbeddingsClient:
    """Async client for generating text embeddings."""

    EMBEDDING_URL = "https://openrouter.ai/api/v1/embeddings"
    MAX_BATCH_SIZE = 100

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        batch_size: int | None = None,
    ) -> None:
        self.api_key = api_key or settings.openrouter_api_key
        self.timeout = timeout or settings.embeddings_timeout
        self.batch_size = max(1, batch_size or settings.embeddings_batch_size or self.MAX_BATCH_SIZE)
        self._client: httpx.AsyncClient | None = None

        if not self.api_key:
            raise APIKeyMissingError("OpenRouter (for embeddings)")

    async def __aenter__(self) -> "EmbeddingsClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client must be used as async context manager")
        return self._client

    def _build_payload(self, batch: list[str], model: str | None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model or settings.embeddings_model,
            "input": batch,
        }
        if settings.embeddings_provider:
            payload["provider"] = {
                "order": [settings.embeddings_provider],
                "allow_fallbacks": settings.embeddings_allow_fallbacks,
            }
        return payload

    async def get_embeddings(
        self,
        texts: list[str],
        model: str | None = None,
    ) -> list[list[float]]:
        """Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed
            model: Optional model override

        Returns:
            List of embedding vectors aligned with ``texts``
        """
        if not texts:
            return []
        logger.info(
            "Generating embeddings",
            extra={"text_count": len(texts), "model": model or settings.embeddings_model},
        )

        all_embeddings: list[list[float]] = []

        for i in range(0, len(texts), self.batch_size):
            batch = texts[i:i + self.batch_size]

            try:
                response = await self.client.post(
                    self.EMBEDDING_URL,
                    json=self._build_payload(batch, model),
                )
            except httpx.HTTPError as e:
                logger.warning("Embeddings HTTP error", extra={"error": str(e)})
                raise ExternalAPIError("OpenRouter Embeddings", str(e)) from e

            if response.status_code == 429:
                raise RateLimitExceededError("OpenRouter Embeddings")
            if response.status_code != 200:
                logger.warning("Embeddings API error", extra={"status": response.status_code})
                raise ExternalAPIError(
                    "OpenRouter Embeddings",
                    f"API error: {response.status_code} - {response.text}",
                )

            data = response.json().get("data", [])
            if len(data) != len(batch):
                raise ExternalAPIError(
                    "OpenRouter Embeddings",
                    f"expected {len(batch)} embeddings, got {len(data)}",
                )

            # Re-associate by index, never by response order
            sorted_data = sorted(data, key=lambda x: x.get("index", 0))
            all_embeddings.extend(item["embedding"] for item in sorted_data)

        return all_embeddings

    async def get_embedding(self, text: str, model: str | None = None) -> list[float]:
        """Generate one embedding."""
        vectors = await self.get_embeddings([text], model=model)
        return vectors[0]
