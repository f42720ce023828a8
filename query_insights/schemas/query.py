"""Query, topic and insights schemas."""

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator

DiscoverySource = Literal["generated", "discovered"]
QueryIntent = Literal[
    "navigational",
    "informational",
    "transactional",
    "comparison",
    "discovery",
    "troubleshooting",
    "unknown",
]
BrandClassification = Literal["brand_intent", "category_opportunity", "low_relevance"]

KNOWN_INTENTS = frozenset(get_args(QueryIntent))


class QueryRecord(BaseModel):
    """One candidate search query with upstream enrichment."""

    text_original: str
    text_normalized: str = ""
    discovery_source: DiscoverySource = "generated"
    intent: QueryIntent = "unknown"
    demand: float | None = None
    has_demand: bool = False
    demand_provider: str | None = None
    semantic_vector: list[float] | None = None
    brand_affinity: float | None = Field(default=None, ge=0, le=1)
    brand_classification: BrandClassification | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_has_demand(cls, data: Any) -> Any:
        """Infer has_demand from demand when the caller did not say."""
        if isinstance(data, dict) and data.get("has_demand") is None:
            data = {**data, "has_demand": data.get("demand") is not None}
        return data

    @model_validator(mode="before")
    @classmethod
    def _coerce_intent(cls, data: Any) -> Any:
        """Map empty or unrecognized intents to unknown."""
        if not isinstance(data, dict):
            return data
        value = str(data.get("intent") or "").strip().lower()
        if value not in KNOWN_INTENTS:
            value = "unknown"
        return {**data, "intent": value}

    @property
    def demand_value(self) -> float | None:
        """Demand when the record carries demand data, else None."""
        if not self.has_demand or self.demand is None:
            return None
        return max(0.0, float(self.demand))

    @property
    def has_vector(self) -> bool:
        return bool(self.semantic_vector)


class ScoredQuery(QueryRecord):
    """QueryRecord plus its ranking signals."""

    volume_score: float = 0.0
    relevance_score: float = 0.5
    source_bonus: float = 0.0
    intent_weight: float = 0.5
    query_score: float = 0.0
    brand_gate: float = 1.0
    final_score: float = 0.0
    confidence: float = 0.2


class CompanyProfile(BaseModel):
    """Company facts used to build the semantic reference."""

    name: str
    website: str | None = None
    products: list[str] = Field(default_factory=list)
    services: list[str] = Field(default_factory=list)
    target_audience: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    brand_terms: list[str] = Field(default_factory=list)
    extracted_text: str | None = None

    def reference_text(self, excerpt_chars: int = 1000) -> str:
        """Concatenate profile facts into one text for embedding."""
        parts = [
            self.name,
            *self.products,
            *self.services,
            *self.categories,
            *self.target_audience,
            (self.extracted_text or "")[:excerpt_chars],
        ]
        return " ".join(part.strip() for part in parts if part and part.strip())


class QueryResult(BaseModel):
    """Public view of a ranked query inside a topic.

    ``query_score`` carries the brand-gated final score (composite score times
    brand gate), the value queries are ranked by.
    """

    model_config = ConfigDict(frozen=True)

    query: str
    query_normalized: str
    intent: QueryIntent
    demand: float | None = None
    has_demand: bool = False
    sources: list[str] = Field(default_factory=list)
    confidence: float
    query_score: float = Field(description="Brand-gated final score, rounded to 4dp")
    brand_affinity: float | None = None


class Topic(BaseModel):
    """A labeled cluster of related queries."""

    model_config = ConfigDict(frozen=True)

    topic_id: str
    topic_label: str
    topic_score: float
    topic_confidence: float
    volume_coverage: float
    query_count: int
    label_source: str = "extractive"
    top_queries: list[QueryResult] = Field(default_factory=list)


class InsightsDebug(BaseModel):
    """Run-level counters attached to insights output."""

    seeds_count: int = 0
    expanded_count: int = 0
    volume_coverage_pct: float = 0.0


class InsightsOutput(BaseModel):
    """Final insights document with provenance-adjusted confidence."""

    company: str
    geo: str = "US"
    lang: str = "en"
    generated_at: str
    topics: list[Topic] = Field(default_factory=list)
    debug: InsightsDebug = Field(default_factory=InsightsDebug)
