"""Topic clustering over scored queries.

Two modes:
- vector: greedy seed clustering on cosine distance, seeds taken in
  descending final score so each cluster is anchored on its best query
- keyword: ordered keyword buckets, used when no record has a vector

Both modes place every query in exactly one non-empty cluster and never
exceed ``max_clusters``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

import numpy as np

from query_insights.schemas.query import ScoredQuery
from query_insights.services.ranking.options import RankingOptions
from query_insights.services.ranking.similarity import Vector, cosine_similarity

logger = logging.getLogger(__name__)

ClusterMode = Literal["vector", "keyword"]

# Checked in order; the first bucket with a matching keyword wins.
KEYWORD_BUCKETS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("returns", ("return", "refund", "exchange", "money back")),
    ("shipping", ("shipping", "delivery", "ship", "arrive", "tracking", "order")),
    ("sizing", ("size", "sizing", "fit", "small", "large", "tight", "loose")),
    ("discounts", ("discount", "code", "coupon", "promo", "sale", "deal", "black friday")),
    ("stores", ("store", "location", "near me", "where", "buy", "shop")),
    ("quality", ("quality", "worth", "review", "good", "bad", "compare", "vs")),
    ("products", ("leggings", "shorts", "shirt", "hoodie", "jacket", "bra")),
    ("account", ("account", "login", "password", "sign in", "app")),
)
CATCH_ALL_BUCKET = "other"


@dataclass
class QueryCluster:
    """Mutable cluster under construction."""

    topic_id: str
    members: list[ScoredQuery] = field(default_factory=list)
    centroid: Vector | None = None
    bucket: str | None = None
    _vector_sum: np.ndarray | None = field(default=None, repr=False)
    _vector_count: int = field(default=0, repr=False)

    def add(self, query: ScoredQuery) -> None:
        self.members.append(query)
        if not query.has_vector:
            return

        vector = np.asarray(query.semantic_vector, dtype=float)
        if self._vector_sum is None:
            self._vector_sum = vector.copy()
        elif vector.shape != self._vector_sum.shape:
            # Centroid dimension is fixed by the first vector
            return
        else:
            self._vector_sum += vector
        self._vector_count += 1
        self.centroid = (self._vector_sum / self._vector_count).tolist()

    def __len__(self) -> int:
        return len(self.members)


@dataclass
class ClusteringResult:
    """Clusters plus the mode that produced them."""

    clusters: list[QueryCluster]
    mode: ClusterMode


def _topic_id(index: int) -> str:
    return f"t{index + 1}"


def seed_order(queries: Sequence[ScoredQuery]) -> list[int]:
    """Indices by final score descending; input order breaks ties."""
    return sorted(range(len(queries)), key=lambda i: -queries[i].final_score)


def cluster_by_vectors(
    queries: Sequence[ScoredQuery],
    options: RankingOptions,
) -> list[QueryCluster]:
    """Greedy seed clustering with a cluster cap and centroid overflow."""
    clusters: list[QueryCluster] = []
    assigned: set[int] = set()
    order = seed_order(queries)

    for seed_idx in order:
        if len(clusters) >= options.max_clusters:
            break
        if seed_idx in assigned:
            continue

        seed = queries[seed_idx]
        cluster = QueryCluster(topic_id=_topic_id(len(clusters)))
        cluster.add(seed)
        assigned.add(seed_idx)
        clusters.append(cluster)

        if not seed.has_vector:
            continue

        for idx in order:
            if idx in assigned:
                continue
            candidate = queries[idx]
            if not candidate.has_vector:
                continue
            distance = 1.0 - cosine_similarity(seed.semantic_vector, candidate.semantic_vector)
            if distance < options.distance_threshold:
                cluster.add(candidate)
                assigned.add(idx)

    overflow = [idx for idx in order if idx not in assigned]
    if overflow:
        logger.info(
            "Cluster cap reached, assigning overflow",
            extra={"max_clusters": options.max_clusters, "overflow": len(overflow)},
        )

    for idx in overflow:
        query = queries[idx]
        best: QueryCluster | None = None
        best_similarity = -1.0
        if query.has_vector:
            for cluster in clusters:
                if cluster.centroid is None:
                    continue
                similarity = cosine_similarity(query.semantic_vector, cluster.centroid)
                if similarity > best_similarity:
                    best_similarity = similarity
                    best = cluster

        if best is None or best_similarity <= options.centroid_acceptance:
            # max() keeps the first of equally large clusters
            best = max(clusters, key=len)
        best.add(query)

    return clusters


def match_keyword_bucket(text: str) -> str:
    """Name of the first bucket whose keyword occurs in ``text``."""
    for bucket, keywords in KEYWORD_BUCKETS:
        if any(keyword in text for keyword in keywords):
            return bucket
    return CATCH_ALL_BUCKET


def cluster_by_keywords(
    queries: Sequence[ScoredQuery],
    options: RankingOptions,
) -> list[QueryCluster]:
    """Deterministic bucket clustering for runs without vectors."""
    grouped: dict[str, list[ScoredQuery]] = {}
    for query in queries:
        grouped.setdefault(match_keyword_bucket(query.text_normalized), []).append(query)

    ordered = [name for name, _ in KEYWORD_BUCKETS if name in grouped]
    catch_all = list(grouped.get(CATCH_ALL_BUCKET, []))

    named_slots = options.max_clusters - (1 if catch_all else 0)
    if len(ordered) > named_slots:
        # Fold trailing buckets into the catch-all to respect the cap
        named_slots = max(0, options.max_clusters - 1)
        folded = ordered[named_slots:]
        ordered = ordered[:named_slots]
        for name in folded:
            catch_all.extend(grouped[name])
        position = {id(q): i for i, q in enumerate(queries)}
        catch_all.sort(key=lambda q: position[id(q)])

    clusters: list[QueryCluster] = []
    for name in ordered:
        cluster = QueryCluster(topic_id=_topic_id(len(clusters)), bucket=name)
        for query in grouped[name]:
            cluster.add(query)
        clusters.append(cluster)

    if catch_all:
        cluster = QueryCluster(topic_id=_topic_id(len(clusters)), bucket=CATCH_ALL_BUCKET)
        for query in catch_all:
            cluster.add(query)
        clusters.append(cluster)

    return clusters


def cluster_queries(
    queries: Sequence[ScoredQuery],
    options: RankingOptions | None = None,
) -> ClusteringResult:
    """Cluster with vectors when any exist, otherwise by keyword bucket."""
    options = options or RankingOptions()
    if not queries:
        return ClusteringResult(clusters=[], mode="keyword")

    if any(q.has_vector for q in queries):
        clusters = cluster_by_vectors(queries, options)
        mode: ClusterMode = "vector"
    else:
        clusters = cluster_by_keywords(queries, options)
        mode = "keyword"

    logger.info(
        "Clustering complete",
        extra={"mode": mode, "query_count": len(queries), "cluster_count": len(clusters)},
    )
    return ClusteringResult(clusters=clusters, mode=mode)
