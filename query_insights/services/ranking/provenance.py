"""Provenance tags and evidence-based confidence."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from query_insights.schemas.query import QueryRecord

GENERATED_TAG = "generated:llm"
DISCOVERED_TAG = "discovered:paa"
FALLBACK_TAG = "estimated:fallback"

# Matched as substrings of the demand provider, in this order.
DEMAND_PROVIDER_TAGS: tuple[tuple[str, str], ...] = (
    ("gsc", "observed:gsc"),
    ("bing", "observed:bing_wmt"),
    ("google_ads", "estimated:google_ads"),
    ("dataforseo", "estimated:dataforseo"),
    ("fallback", FALLBACK_TAG),
)

NEUTRAL_TOPIC_CONFIDENCE = 0.5


@dataclass(frozen=True)
class ConfidenceAssessment:
    """Confidence score with the evidence that produced it."""

    score: float
    factors: dict[str, float] = field(default_factory=dict)


def demand_provider_tag(provider: str | None) -> str | None:
    """Tag for the provider that supplied demand, if recognized."""
    if not provider:
        return None
    lowered = provider.lower()
    for needle, tag in DEMAND_PROVIDER_TAGS:
        if needle in lowered:
            return tag
    return None


def provenance_tags(record: QueryRecord) -> list[str]:
    """Ordered, de-duplicated provenance tags for one record."""
    tags = [DISCOVERED_TAG if record.discovery_source == "discovered" else GENERATED_TAG]
    if record.has_demand:
        provider_tag = demand_provider_tag(record.demand_provider)
        if provider_tag is not None:
            tags.append(provider_tag)
    return list(dict.fromkeys(tags))


def merge_tags(*tag_lists: Iterable[str]) -> list[str]:
    """Union of tag lists, first occurrence order."""
    merged: dict[str, None] = {}
    for tags in tag_lists:
        for tag in tags:
            merged.setdefault(tag, None)
    return list(merged)


def evidence_confidence(tags: Sequence[str]) -> ConfidenceAssessment:
    """Confidence from the strength of the evidence behind a query.

    Observed search-console data is hard evidence; looked-up volume beats a
    heuristic estimate; appearing in several discovery sources adds a little.
    """
    factors: dict[str, float] = {"base": 0.2}

    if any(tag.startswith("observed:") for tag in tags):
        factors["observed"] = 0.6

    if any(tag in ("estimated:google_ads", "estimated:dataforseo") for tag in tags):
        factors["volume_lookup"] = 0.2
    elif FALLBACK_TAG in tags:
        factors["volume_estimate"] = 0.1

    discovery_tags = [t for t in tags if t.startswith(("discovered:", "generated:"))]
    if len(discovery_tags) > 1:
        factors["multi_source"] = 0.1

    return ConfidenceAssessment(score=min(1.0, sum(factors.values())), factors=factors)


def topic_confidence(
    confidences: Sequence[float],
    neutral: float = NEUTRAL_TOPIC_CONFIDENCE,
) -> float:
    """Mean of member confidences, rounded to 2dp; neutral when empty."""
    if not confidences:
        return neutral
    return round(sum(confidences) / len(confidences), 2)
