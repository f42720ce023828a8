"""Query text normalization and deduplication."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from query_insights.schemas.query import QueryRecord

logger = logging.getLogger(__name__)

TRAILING_PUNCTUATION_PATTERN = re.compile(r"[\s?.!]+$")
WHITESPACE_PATTERN = re.compile(r"\s+")
REPEATED_WORD_PATTERN = re.compile(r"\b(\w+)\b(?: \1\b)+")


@dataclass
class NormalizationResult:
    """Deduplicated records plus diagnostics."""

    records: list[QueryRecord] = field(default_factory=list)
    dropped_empty: int = 0
    merged_duplicates: int = 0


def normalize_query_text(text: str) -> str:
    """Canonicalize raw query text.

    "Gymshark  Gymshark returns?!" -> "gymshark returns"
    """
    value = (text or "").lower().strip()
    value = TRAILING_PUNCTUATION_PATTERN.sub("", value)
    value = WHITESPACE_PATTERN.sub(" ", value)
    value = REPEATED_WORD_PATTERN.sub(r"\1", value)
    return value.strip()


def _demand_rank(record: QueryRecord) -> float:
    # Absent demand ranks below a present zero.
    demand = record.demand_value
    return -1.0 if demand is None else demand


def normalize_and_dedupe(records: Iterable[QueryRecord]) -> NormalizationResult:
    """Normalize every record and keep one per normalized text.

    On collision the record with strictly greater demand wins; the first seen
    record wins ties and its position in the output is kept.
    """
    result = NormalizationResult()
    survivors: dict[str, QueryRecord] = {}

    for record in records:
        normalized = normalize_query_text(record.text_original)
        if not normalized:
            result.dropped_empty += 1
            continue

        candidate = record.model_copy(update={"text_normalized": normalized})
        existing = survivors.get(normalized)
        if existing is None:
            survivors[normalized] = candidate
            continue

        result.merged_duplicates += 1
        if _demand_rank(candidate) > _demand_rank(existing):
            survivors[normalized] = candidate

    result.records = list(survivors.values())
    if result.dropped_empty or result.merged_duplicates:
        logger.info(
            "Normalized queries",
            extra={
                "kept": len(result.records),
                "dropped_empty": result.dropped_empty,
                "merged_duplicates": result.merged_duplicates,
            },
        )
    return result
