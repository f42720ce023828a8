"""Per-query composite scoring.

Volume is the primary ranking signal. Relevance, discovery source and intent
only break ties between queries of equal (or absent) demand.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from query_insights.schemas.query import QueryRecord, ScoredQuery
from query_insights.services.ranking.options import RankingOptions
from query_insights.services.ranking.similarity import cosine_similarity, rescale_cosine

INTENT_WEIGHTS: dict[str, float] = {
    "transactional": 1.0,
    "navigational": 0.9,
    "comparison": 0.8,
    "discovery": 0.7,
    "informational": 0.6,
    "troubleshooting": 0.5,
}
DEFAULT_INTENT_WEIGHT = 0.5
CLEAR_INTENTS = frozenset({"transactional", "navigational"})

BASE_CONFIDENCE = 0.2
DEMAND_CONFIDENCE_BONUS = 0.2
DISCOVERED_CONFIDENCE_BONUS = 0.1
CLEAR_INTENT_CONFIDENCE_BONUS = 0.1


def get_intent_weight(intent: str | None) -> float:
    return INTENT_WEIGHTS.get(intent or "", DEFAULT_INTENT_WEIGHT)


def max_batch_demand(records: Sequence[QueryRecord]) -> float:
    """Largest demand in the batch, floored at 1."""
    demands = [r.demand_value for r in records if r.demand_value is not None]
    return max([1.0, *demands])


def volume_score(record: QueryRecord, max_demand: float) -> float:
    """log1p-normalized demand in [0, 1]; 0 without demand data."""
    demand = record.demand_value
    if demand is None:
        return 0.0
    denominator = math.log1p(max(1.0, max_demand))
    return max(0.0, min(1.0, math.log1p(demand) / denominator))


def relevance_score(
    vector: Sequence[float] | None,
    company_vector: Sequence[float] | None,
    neutral: float = 0.5,
) -> float:
    """Rescaled cosine to the company reference; neutral when either is missing."""
    if not vector or not company_vector:
        return neutral
    return rescale_cosine(cosine_similarity(vector, company_vector))


def source_bonus(record: QueryRecord) -> float:
    return 1.0 if record.discovery_source == "discovered" else 0.0


def brand_gate(brand_affinity: float | None, floor: float) -> float:
    """Multiplier in [floor, 1]; 1.0 when no brand-affinity data exists."""
    if brand_affinity is None:
        return 1.0
    affinity = max(0.0, min(1.0, brand_affinity))
    return floor + (1.0 - floor) * affinity


def query_confidence(record: QueryRecord) -> float:
    """Additive evidence confidence from the record's own fields."""
    confidence = BASE_CONFIDENCE
    if record.has_demand:
        confidence += DEMAND_CONFIDENCE_BONUS
    if record.discovery_source == "discovered":
        confidence += DISCOVERED_CONFIDENCE_BONUS
    if record.intent in CLEAR_INTENTS:
        confidence += CLEAR_INTENT_CONFIDENCE_BONUS
    return min(1.0, max(BASE_CONFIDENCE, confidence))


def score_query(
    record: QueryRecord,
    *,
    max_demand: float,
    company_vector: Sequence[float] | None,
    options: RankingOptions,
) -> ScoredQuery:
    """Score one record against batch-level context."""
    volume = volume_score(record, max_demand)
    relevance = relevance_score(record.semantic_vector, company_vector, options.neutral_relevance)
    source = source_bonus(record)
    intent = get_intent_weight(record.intent)

    composite = (
        options.volume_weight * volume
        + options.relevance_weight * relevance
        + options.source_weight * source
        + options.intent_weight * intent
    )
    gate = brand_gate(record.brand_affinity, options.brand_affinity_floor)

    return ScoredQuery(
        **record.model_dump(),
        volume_score=volume,
        relevance_score=relevance,
        source_bonus=source,
        intent_weight=intent,
        query_score=composite,
        brand_gate=gate,
        final_score=composite * gate,
        confidence=query_confidence(record),
    )


def calculate_query_scores(
    records: Sequence[QueryRecord],
    company_vector: Sequence[float] | None,
    options: RankingOptions | None = None,
) -> list[ScoredQuery]:
    """Score every record; none are dropped."""
    options = options or RankingOptions()
    max_demand = max_batch_demand(records)
    return [
        score_query(
            record,
            max_demand=max_demand,
            company_vector=company_vector,
            options=options,
        )
        for record in records
    ]
