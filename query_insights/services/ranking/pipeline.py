"""Cluster-and-rank pipeline: enriched query records in, ranked topics out."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from query_insights.schemas.query import CompanyProfile, QueryRecord, Topic
from query_insights.services.ranking.aggregation import TopicLabeler, aggregate_clusters
from query_insights.services.ranking.clustering import QueryCluster, cluster_queries
from query_insights.services.ranking.normalizer import normalize_and_dedupe
from query_insights.services.ranking.options import RankingOptions
from query_insights.services.ranking.scoring import calculate_query_scores
from query_insights.services.ranking.similarity import (
    SimilarityProvider,
    embed_records,
    resolve_company_reference,
)

logger = logging.getLogger(__name__)

CompanyReference = Sequence[float] | CompanyProfile | str | None


@dataclass
class ClusterRankDiagnostics:
    """Counters describing one run."""

    input_count: int = 0
    dropped_empty: int = 0
    merged_duplicates: int = 0
    deduplicated_count: int = 0
    vectors_available: int = 0
    company_vector_available: bool = False
    clustering_mode: str = "keyword"
    cluster_count: int = 0
    topics_emitted: int = 0
    extractive_labels: int = 0

    def to_dict(self) -> dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class ClusterRankResult:
    """Ranked topics plus the full cluster membership behind them."""

    topics: list[Topic] = field(default_factory=list)
    clusters: list[QueryCluster] = field(default_factory=list)
    diagnostics: ClusterRankDiagnostics = field(default_factory=ClusterRankDiagnostics)


class ClusterRankPipeline:
    """Normalize, embed, score, cluster, and label query records.

    Collaborators are optional. Without a similarity provider every relevance
    is neutral and clustering uses keyword buckets; without a labeler every
    topic gets an extractive label.
    """

    def __init__(
        self,
        similarity: SimilarityProvider | None = None,
        labeler: TopicLabeler | None = None,
        options: RankingOptions | None = None,
    ) -> None:
        self.similarity = similarity
        self.labeler = labeler
        self.options = options or RankingOptions.from_settings()

    async def run(
        self,
        queries: Sequence[QueryRecord],
        company_reference: CompanyReference = None,
    ) -> ClusterRankResult:
        diagnostics = ClusterRankDiagnostics(input_count=len(queries))
        logger.info("Cluster & rank starting", extra={"query_count": len(queries)})

        normalized = normalize_and_dedupe(queries)
        diagnostics.dropped_empty = normalized.dropped_empty
        diagnostics.merged_duplicates = normalized.merged_duplicates
        diagnostics.deduplicated_count = len(normalized.records)
        if not normalized.records:
            return ClusterRankResult(diagnostics=diagnostics)

        records = await embed_records(normalized.records, self.similarity)
        company_vector = await resolve_company_reference(company_reference, self.similarity)
        diagnostics.vectors_available = sum(1 for r in records if r.has_vector)
        diagnostics.company_vector_available = company_vector is not None

        scored = calculate_query_scores(records, company_vector, self.options)
        clustering = cluster_queries(scored, self.options)
        diagnostics.clustering_mode = clustering.mode
        diagnostics.cluster_count = len(clustering.clusters)

        topics = await aggregate_clusters(clustering.clusters, self.labeler, self.options)
        diagnostics.topics_emitted = len(topics)
        diagnostics.extractive_labels = sum(1 for t in topics if t.label_source == "extractive")

        logger.info("Cluster & rank complete", extra=diagnostics.to_dict())
        return ClusterRankResult(
            topics=topics,
            clusters=clustering.clusters,
            diagnostics=diagnostics,
        )


async def cluster_and_rank(
    queries: Sequence[QueryRecord],
    company_reference: CompanyReference = None,
    *,
    similarity: SimilarityProvider | None = None,
    labeler: TopicLabeler | None = None,
    options: RankingOptions | None = None,
) -> list[Topic]:
    """Turn enriched query records into ranked, labeled topics."""
    pipeline = ClusterRankPipeline(similarity=similarity, labeler=labeler, options=options)
    result = await pipeline.run(queries, company_reference)
    return result.topics
