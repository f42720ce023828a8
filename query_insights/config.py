"""Application configuration using pydantic-settings."""

import json
from ast import literal_eval
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "QueryInsights"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # API
    api_v1_prefix: str = "/api/v1"
    cors_origins: Annotated[list[str], NoDecode] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Redis / embedding cache
    redis_url: str = "redis://localhost:6379/0"
    embedding_cache_backend: Literal["redis", "memory", "none"] = "redis"
    embedding_cache_ttl_seconds: int = 30 * 24 * 60 * 60  # 30 days

    # Embeddings (OpenRouter)
    openrouter_api_key: str | None = None
    embeddings_model: str = "openai/text-embedding-3-small"
    embeddings_provider: str | None = None
    embeddings_allow_fallbacks: bool = True
    embeddings_batch_size: int = 100
    embeddings_timeout: float = 60.0

    # Topic labeling (pydantic-ai)
    topic_labeling_enabled: bool = True
    topic_label_model: str = "openrouter:openai/gpt-4o-mini"
    llm_max_retries: int = 2

    # Clustering and ranking
    cluster_distance_threshold: float = 0.25
    max_clusters: int = 15
    centroid_acceptance_similarity: float = 0.5
    max_topics: int = 10
    top_queries_per_topic: int = 10
    topic_score_top_n: int = 5
    brand_affinity_floor: float = 0.25
    volume_weight: float = 1.0
    relevance_weight: float = 0.0005
    source_weight: float = 0.0002
    intent_weight: float = 0.0002
    neutral_relevance: float = 0.5
    neutral_topic_confidence: float = 0.5
    label_source_queries: int = 10
    label_max_length: int = 50

    @property
    def embeddings_enabled(self) -> bool:
        """Whether an embeddings API key is configured."""
        return bool(self.openrouter_api_key)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: object) -> object:
        """Accept JSON list/string or comma-separated values for CORS_ORIGINS."""
        def normalize(origin: object) -> str:
            return str(origin).strip().strip("'\"")

        if isinstance(value, list):
            return [normalize(origin) for origin in value if normalize(origin)]
        if not isinstance(value, str):
            return value

        raw = value.strip()
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            try:
                parsed = literal_eval(raw)
            except (ValueError, SyntaxError):
                return [normalize(origin) for origin in raw.split(",") if normalize(origin)]

        if isinstance(parsed, str):
            parsed = [parsed]
        if isinstance(parsed, tuple | set):
            parsed = list(parsed)
        if not isinstance(parsed, list):
            raise ValueError(
                "CORS_ORIGINS must be a JSON array, JSON string, or comma-separated string.",
            )
        return [normalize(origin) for origin in parsed if normalize(origin)]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
