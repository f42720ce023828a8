"""Query normalization, scoring, clustering and topic ranking."""

from query_insights.services.ranking.options import RankingOptions
from query_insights.services.ranking.pipeline import (
    ClusterRankPipeline,
    ClusterRankResult,
    cluster_and_rank,
)

__all__ = ["ClusterRankPipeline", "ClusterRankResult", "RankingOptions", "cluster_and_rank"]
