"""Tunable parameters for the cluster-and-rank core."""

from dataclasses import dataclass

from query_insights.config import Settings, settings
from query_insights.core.exceptions import InvalidRankingOptionsError

# Volume must outweigh every tie-breaker combined by this factor.
MIN_VOLUME_DOMINANCE = 100.0


@dataclass(frozen=True)
class RankingOptions:
    """Thresholds, caps and weights used by scoring, clustering and labeling."""

    distance_threshold: float = 0.25
    max_clusters: int = 15
    centroid_acceptance: float = 0.5
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

    def __post_init__(self) -> None:
        tie_breakers = self.relevance_weight + self.source_weight + self.intent_weight
        if min(self.relevance_weight, self.source_weight, self.intent_weight) < 0:
            raise InvalidRankingOptionsError("weights must be non-negative")
        if self.volume_weight <= 0 or self.volume_weight < MIN_VOLUME_DOMINANCE * tie_breakers:
            raise InvalidRankingOptionsError(
                "volume weight must be at least 100x the combined tie-breaker weights",
                volume_weight=self.volume_weight,
                tie_breaker_weight=tie_breakers,
            )
        if not 0 < self.brand_affinity_floor <= 1:
            raise InvalidRankingOptionsError(
                "brand affinity floor must be in (0, 1]",
                brand_affinity_floor=self.brand_affinity_floor,
            )
        if self.max_clusters < 1 or self.max_topics < 1:
            raise InvalidRankingOptionsError(
                "cluster and topic caps must be positive",
                max_clusters=self.max_clusters,
                max_topics=self.max_topics,
            )
        if self.top_queries_per_topic < 1 or self.topic_score_top_n < 1:
            raise InvalidRankingOptionsError("top-N sizes must be positive")
        if not 0 <= self.neutral_relevance <= 1 or not 0 <= self.neutral_topic_confidence <= 1:
            raise InvalidRankingOptionsError("neutral values must be within [0, 1]")

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "RankingOptions":
        """Build options from application settings."""
        config = config or settings
        return cls(
            distance_threshold=config.cluster_distance_threshold,
            max_clusters=config.max_clusters,
            centroid_acceptance=config.centroid_acceptance_similarity,
            max_topics=config.max_topics,
            top_queries_per_topic=config.top_queries_per_topic,
            topic_score_top_n=config.topic_score_top_n,
            brand_affinity_floor=config.brand_affinity_floor,
            volume_weight=config.volume_weight,
            relevance_weight=config.relevance_weight,
            source_weight=config.source_weight,
            intent_weight=config.intent_weight,
            neutral_relevance=config.neutral_relevance,
            neutral_topic_confidence=config.neutral_topic_confidence,
            label_source_queries=config.label_source_queries,
            label_max_length=config.label_max_length,
        )
