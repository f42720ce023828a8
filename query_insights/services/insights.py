"""Insights output: provenance and evidence confidence over ranked topics."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from query_insights.schemas.query import (
    InsightsDebug,
    InsightsOutput,
    QueryRecord,
    QueryResult,
    Topic,
)
from query_insights.services.ranking.normalizer import normalize_query_text
from query_insights.services.ranking.provenance import (
    GENERATED_TAG,
    evidence_confidence,
    merge_tags,
    provenance_tags,
    topic_confidence,
)

logger = logging.getLogger(__name__)


def _index_records(records: Sequence[QueryRecord]) -> dict[str, list[QueryRecord]]:
    index: dict[str, list[QueryRecord]] = {}
    for record in records:
        key = record.text_normalized or normalize_query_text(record.text_original)
        if key:
            index.setdefault(key, []).append(record)
    return index


def _query_with_provenance(
    query: QueryResult,
    matches: list[QueryRecord],
) -> QueryResult:
    if matches:
        # Every variant that collapsed into this query contributes evidence
        sources = merge_tags(*(provenance_tags(r) for r in matches))
    else:
        sources = merge_tags(query.sources) or [GENERATED_TAG]
    assessment = evidence_confidence(sources)
    return query.model_copy(
        update={"sources": sources, "confidence": round(assessment.score, 2)}
    )


def volume_coverage_pct(records: Sequence[QueryRecord]) -> float:
    """Share of records carrying demand data, rounded to 4dp."""
    if not records:
        return 0.0
    with_demand = sum(1 for r in records if r.has_demand)
    return round(with_demand / len(records), 4)


def build_insights_output(
    topics: Sequence[Topic],
    records: Sequence[QueryRecord],
    *,
    company: str,
    geo: str = "US",
    lang: str = "en",
    seeds_count: int = 0,
) -> InsightsOutput:
    """Attach provenance and evidence confidence to every topic query."""
    index = _index_records(records)

    enriched_topics: list[Topic] = []
    for topic in topics:
        queries = [
            _query_with_provenance(q, index.get(q.query_normalized, []))
            for q in topic.top_queries
        ]
        enriched_topics.append(
            topic.model_copy(
                update={
                    "top_queries": queries,
                    "topic_confidence": topic_confidence([q.confidence for q in queries]),
                }
            )
        )

    output = InsightsOutput(
        company=company,
        geo=geo,
        lang=lang,
        generated_at=datetime.now(timezone.utc).date().isoformat(),
        topics=enriched_topics,
        debug=InsightsDebug(
            seeds_count=seeds_count,
            expanded_count=len(records),
            volume_coverage_pct=volume_coverage_pct(records),
        ),
    )
    logger.info(
        "Insights output built",
        extra={"company": company, "topic_count": len(enriched_topics), "record_count": len(records)},
    )
    return output
