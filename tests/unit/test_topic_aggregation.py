"""Unit tests for topic aggregation, ranking and labeling."""

from __future__ import annotations

import pytest

from query_insights.schemas.query import QueryRecord, Topic
from query_insights.services.ranking.aggregation import (
    UNNAMED_TOPIC,
    aggregate_clusters,
    build_topic,
    extract_label,
    is_plausible_label,
    rank_members,
    rank_topics,
)
from query_insights.services.ranking.clustering import QueryCluster
from query_insights.services.ranking.options import RankingOptions
from query_insights.services.ranking.scoring import calculate_query_scores


class _FakeLabeler:
    def __init__(self, label: str | None = None, error: Exception | None = None) -> None:
        self.label = label
        self.error = error
        self.calls: list[list[str]] = []

    async def label_cluster(self, top_texts: list[str]) -> str | None:
        self.calls.append(list(top_texts))
        if self.error is not None:
            raise self.error
        return self.label


def _cluster(topic_id: str, *records: QueryRecord) -> QueryCluster:
    cluster = QueryCluster(topic_id=topic_id)
    for query in calculate_query_scores(list(records), company_vector=None):
        cluster.add(query)
    return cluster


def _record(text: str, demand: float | None = None, **kwargs) -> QueryRecord:
    return QueryRecord(text_original=text, text_normalized=text, demand=demand, **kwargs)


def _topic(topic_id: str, score: float) -> Topic:
    return Topic(
        topic_id=topic_id,
        topic_label=topic_id,
        topic_score=score,
        topic_confidence=0.5,
        volume_coverage=1.0,
        query_count=1,
    )


def test_members_with_demand_come_first_by_demand() -> None:
    cluster = _cluster(
        "t1",
        _record("gymshark refund", 5400),
        _record("gymshark exchange policy"),
        _record("gymshark returns", 18200),
    )

    ranked = rank_members(cluster.members)

    assert [q.demand_value for q in ranked] == [18200, 5400, None]


def test_members_without_demand_are_ordered_by_final_score() -> None:
    cluster = _cluster(
        "t1",
        _record("plain question"),
        _record("buy now", intent="transactional", discovery_source="discovered"),
    )

    ranked = rank_members(cluster.members)

    assert [q.text_normalized for q in ranked] == ["buy now", "plain question"]


def test_extract_label_uses_content_words() -> None:
    assert extract_label("gymshark return policy") == "Gymshark return policy"
    assert extract_label("how do i return my gymshark leggings order") == "Return gymshark leggings order"
    assert extract_label("how to do it") == "how to do"
    assert extract_label("") == UNNAMED_TOPIC


def test_is_plausible_label_rejects_empty_and_long_labels() -> None:
    assert is_plausible_label("Returns & Refunds", 50)
    assert not is_plausible_label("   ", 50)
    assert not is_plausible_label(None, 50)
    assert not is_plausible_label("x" * 50, 50)


@pytest.mark.asyncio
async def test_build_topic_sums_top_demand_and_reports_coverage() -> None:
    cluster = _cluster(
        "t1",
        _record("gymshark refund", 5400),
        _record("gymshark exchange policy"),
        _record("gymshark returns", 18200),
        _record("gymshark return label", 0),
    )

    topic = await build_topic(cluster, None, RankingOptions())

    assert topic.topic_id == "t1"
    assert topic.topic_score == 23600
    assert topic.volume_coverage == 0.75
    assert topic.query_count == 4
    assert topic.topic_label == "Gymshark returns"
    assert topic.label_source == "extractive"
    assert topic.top_queries[0].query_normalized == "gymshark returns"
    assert topic.top_queries[-1].demand is None
    assert topic.top_queries[-1].has_demand is False


@pytest.mark.asyncio
async def test_topic_score_only_counts_top_n_members() -> None:
    cluster = _cluster("t1", *[_record(f"q{i}", 100) for i in range(8)])

    topic = await build_topic(cluster, None, RankingOptions(topic_score_top_n=5, top_queries_per_topic=3))

    assert topic.topic_score == 500
    assert len(topic.top_queries) == 3
    assert topic.query_count == 8


@pytest.mark.asyncio
async def test_collaborator_label_is_used_when_plausible() -> None:
    labeler = _FakeLabeler(label="  Returns & Refunds ")
    cluster = _cluster("t1", _record("gymshark returns", 100), _record("gymshark refund", 50))

    topic = await build_topic(cluster, labeler, RankingOptions())

    assert topic.topic_label == "Returns & Refunds"
    assert topic.label_source == "collaborator"
    assert labeler.calls == [["gymshark returns", "gymshark refund"]]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "labeler",
    [
        _FakeLabeler(label="A" * 80),
        _FakeLabeler(label=""),
        _FakeLabeler(label=None),
        _FakeLabeler(error=RuntimeError("model unavailable")),
    ],
)
async def test_rejected_or_failed_labels_fall_back_to_extractive(labeler: _FakeLabeler) -> None:
    cluster = _cluster("t1", _record("gymshark returns", 100))

    topic = await build_topic(cluster, labeler, RankingOptions())

    assert topic.topic_label == "Gymshark returns"
    assert topic.label_source == "extractive"


def test_rank_topics_is_stable_and_truncates() -> None:
    topics = [_topic("t1", 10), _topic("t2", 30), _topic("t3", 10), _topic("t4", 5)]

    ranked = rank_topics(topics, max_topics=3)

    assert [t.topic_id for t in ranked] == ["t2", "t1", "t3"]


@pytest.mark.asyncio
async def test_aggregate_clusters_ranks_topics_by_score() -> None:
    clusters = [
        _cluster("t1", _record("gymshark history", 10)),
        _cluster("t2", _record("gymshark returns", 18200), _record("gymshark refund", 5400)),
    ]

    topics = await aggregate_clusters(clusters)

    assert [t.topic_id for t in topics] == ["t2", "t1"]
    assert topics[0].topic_score == 23600


@pytest.mark.asyncio
async def test_query_result_score_is_brand_gated_final_score() -> None:
    cluster = _cluster("t1", _record("running shoes", 500, brand_affinity=0.0))
    member = cluster.members[0]

    topic = await build_topic(cluster, None, RankingOptions())

    assert member.final_score < member.query_score
    assert topic.top_queries[0].query_score == round(member.final_score, 4)
