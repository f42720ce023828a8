"""Topic aggregation and labeling."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from query_insights.schemas.query import QueryResult, ScoredQuery, Topic
from query_insights.services.ranking.clustering import QueryCluster
from query_insights.services.ranking.options import RankingOptions
from query_insights.services.ranking.provenance import provenance_tags, topic_confidence

logger = logging.getLogger(__name__)

LABEL_STOPWORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
        "with", "is", "are", "was", "were", "be", "been", "being", "have", "has",
        "had", "do", "does", "did", "will", "would", "should", "could", "may",
        "might", "must", "can", "this", "that", "these", "those", "what", "how",
        "why", "when", "where", "who", "which", "i", "me", "my", "you", "your",
    }
)
LABEL_MAX_TOKENS = 4
UNNAMED_TOPIC = "Unnamed Topic"


class TopicLabeler(Protocol):
    """Short-label capability for a cluster."""

    async def label_cluster(self, top_texts: list[str]) -> str | None: ...


def member_sort_key(query: ScoredQuery) -> tuple[int, float, float]:
    """Demand-bearing records first by demand, then by final score."""
    demand = query.demand_value
    if demand is None:
        return (1, 0.0, -query.final_score)
    return (0, -demand, -query.final_score)


def rank_members(members: Sequence[ScoredQuery]) -> list[ScoredQuery]:
    return sorted(members, key=member_sort_key)


def extract_label(text: str) -> str:
    """Extractive label from one query: first content words, capitalized."""
    tokens = text.split()
    words = [w for w in tokens if len(w) > 2 and w not in LABEL_STOPWORDS][:LABEL_MAX_TOKENS]
    if not words:
        return " ".join(tokens[:3]) or UNNAMED_TOPIC
    label = " ".join(words)
    return label[0].upper() + label[1:]


def is_plausible_label(label: str | None, max_length: int) -> bool:
    return bool(label and label.strip()) and len(label.strip()) < max_length


def format_query_result(query: ScoredQuery) -> QueryResult:
    return QueryResult(
        query=query.text_original,
        query_normalized=query.text_normalized,
        intent=query.intent,
        demand=query.demand_value,
        has_demand=query.has_demand,
        sources=provenance_tags(query),
        confidence=round(query.confidence, 2),
        query_score=round(query.final_score, 4),
        brand_affinity=query.brand_affinity,
    )


async def label_topic(
    ranked: Sequence[ScoredQuery],
    labeler: TopicLabeler | None,
    options: RankingOptions,
) -> tuple[str, str]:
    """Return (label, label_source) for a ranked cluster."""
    if not ranked:
        return UNNAMED_TOPIC, "extractive"

    if labeler is not None:
        texts = [q.text_normalized for q in ranked[: options.label_source_queries]]
        try:
            label = await labeler.label_cluster(texts)
        except Exception as e:
            logger.warning("Topic labeler failed", extra={"error": str(e)})
            label = None
        if is_plausible_label(label, options.label_max_length):
            return label.strip(), "collaborator"
        logger.info("Label rejected, using extractive fallback", extra={"label": label})

    return extract_label(ranked[0].text_normalized), "extractive"


async def build_topic(
    cluster: QueryCluster,
    labeler: TopicLabeler | None,
    options: RankingOptions,
) -> Topic:
    """Aggregate one cluster into an immutable Topic."""
    ranked = rank_members(cluster.members)
    top = ranked[: options.top_queries_per_topic]

    topic_score = sum(q.demand_value or 0.0 for q in ranked[: options.topic_score_top_n])
    with_demand = sum(1 for q in ranked if q.has_demand)
    coverage = with_demand / len(ranked) if ranked else 0.0
    label, label_source = await label_topic(top, labeler, options)

    return Topic(
        topic_id=cluster.topic_id,
        topic_label=label,
        topic_score=topic_score,
        topic_confidence=topic_confidence(
            [q.confidence for q in top],
            neutral=options.neutral_topic_confidence,
        ),
        volume_coverage=round(coverage, 2),
        query_count=len(ranked),
        label_source=label_source,
        top_queries=[format_query_result(q) for q in top],
    )


def rank_topics(topics: Sequence[Topic], max_topics: int) -> list[Topic]:
    """Sort by topic score descending (stable) and truncate."""
    return sorted(topics, key=lambda t: -t.topic_score)[:max_topics]


async def aggregate_clusters(
    clusters: Sequence[QueryCluster],
    labeler: TopicLabeler | None = None,
    options: RankingOptions | None = None,
) -> list[Topic]:
    """Build, label and rank topics from clusters."""
    options = options or RankingOptions()
    topics = [await build_topic(cluster, labeler, options) for cluster in clusters if cluster.members]
    return rank_topics(topics, options.max_topics)
