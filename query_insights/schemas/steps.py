"""Request and response schemas for pipeline step endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from query_insights.schemas.query import CompanyProfile, QueryRecord, Topic


class ClusterRankRequest(BaseModel):
    """Body for the cluster-rank step."""

    queries: list[QueryRecord]
    company_profile: CompanyProfile | None = None
    company_vector: list[float] | None = None


class ClusterRankResponse(BaseModel):
    """Ranked topics and run diagnostics."""

    topics: list[Topic]
    count: int
    total_queries: int
    diagnostics: dict[str, Any] = Field(default_factory=dict)


class ProvenanceRequest(BaseModel):
    """Body for the provenance step."""

    topics: list[Topic]
    queries: list[QueryRecord]
    company: str = Field(min_length=1)
    geo: str = "US"
    lang: str = "en"
    seeds_count: int = Field(default=0, ge=0)
