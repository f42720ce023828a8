"""Unit tests for the insights output builder."""

from __future__ import annotations

import pytest

from query_insights.schemas.query import QueryRecord, QueryResult, Topic
from query_insights.services.insights import build_insights_output, volume_coverage_pct
from query_insights.services.ranking.provenance import DISCOVERED_TAG, GENERATED_TAG


def _topic(*queries: QueryResult) -> Topic:
    return Topic(
        topic_id="t1",
        topic_label="Returns",
        topic_score=18200,
        topic_confidence=0.3,
        volume_coverage=1.0,
        query_count=len(queries),
        top_queries=list(queries),
    )


def _result(normalized: str, confidence: float = 0.4) -> QueryResult:
    return QueryResult(
        query=normalized,
        query_normalized=normalized,
        intent="informational",
        confidence=confidence,
        query_score=0.9,
    )


def test_volume_coverage_pct_counts_records_with_demand() -> None:
    records = [
        QueryRecord(text_original="a", demand=10),
        QueryRecord(text_original="b", demand=0),
        QueryRecord(text_original="c"),
    ]

    assert volume_coverage_pct(records) == 0.6667
    assert volume_coverage_pct([]) == 0.0


def test_build_insights_output_merges_provenance_of_collapsed_variants() -> None:
    """Variants that normalize to the same query pool their evidence."""
    records = [
        QueryRecord(text_original="Gymshark Returns?", demand=100, demand_provider="gsc"),
        QueryRecord(
            text_original="gymshark returns",
            discovery_source="discovered",
            demand=90,
            demand_provider="dataforseo",
        ),
    ]
    topic = _topic(_result("gymshark returns"))

    output = build_insights_output([topic], records, company="Gymshark", seeds_count=3)

    query = output.topics[0].top_queries[0]
    assert query.sources == [
        GENERATED_TAG,
        "observed:gsc",
        DISCOVERED_TAG,
        "estimated:dataforseo",
    ]
    assert query.confidence == pytest.approx(1.0)
    assert output.topics[0].topic_confidence == pytest.approx(1.0)
    assert output.company == "Gymshark"
    assert output.debug.seeds_count == 3
    assert output.debug.expanded_count == 2
    assert output.debug.volume_coverage_pct == 1.0
    assert topic.top_queries[0].sources == []


def test_build_insights_output_defaults_unmatched_queries_to_generated() -> None:
    output = build_insights_output(
        [_topic(_result("gymshark history"))],
        [],
        company="Gymshark",
        geo="GB",
        lang="en",
    )

    query = output.topics[0].top_queries[0]
    assert query.sources == [GENERATED_TAG]
    assert query.confidence == pytest.approx(0.2)
    assert output.geo == "GB"
    assert output.generated_at
