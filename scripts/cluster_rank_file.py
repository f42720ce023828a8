"""Cluster and rank enriched queries from a JSON file."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from query_insights.agents.topic_labeler import build_topic_labeler
from query_insights.api.v1.dependencies import get_similarity_provider
from query_insights.core.exceptions import QueryInsightsError
from query_insights.core.logging import setup_logging
from query_insights.schemas.steps import ClusterRankRequest
from query_insights.services.ranking import ClusterRankPipeline, RankingOptions

logger = logging.getLogger("query_insights.scripts.cluster_rank_file")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("input", help="JSON file with queries and company_profile/company_vector")
    parser.add_argument("--output", help="Write topics JSON here instead of stdout")
    parser.add_argument(
        "--distance-threshold",
        type=float,
        help="Cosine distance below which queries join a seed's cluster",
    )
    parser.add_argument("--max-clusters", type=int, help="Cluster cap")
    parser.add_argument("--max-topics", type=int, help="Number of topics to emit")
    parser.add_argument(
        "--no-embeddings",
        action="store_true",
        help="Skip the embeddings provider (keyword clustering, neutral relevance)",
    )
    parser.add_argument(
        "--no-labeling",
        action="store_true",
        help="Skip the LLM labeler (extractive labels only)",
    )
    return parser.parse_args(argv)


def build_options(args: argparse.Namespace) -> RankingOptions:
    """Apply CLI overrides on top of settings-derived options."""
    overrides: dict[str, Any] = {}
    if args.distance_threshold is not None:
        overrides["distance_threshold"] = args.distance_threshold
    if args.max_clusters is not None:
        overrides["max_clusters"] = args.max_clusters
    if args.max_topics is not None:
        overrides["max_topics"] = args.max_topics
    return replace(RankingOptions.from_settings(), **overrides)


def load_request(path: Path) -> ClusterRankRequest:
    """Load a cluster-rank request; a bare list is treated as the queries."""
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, list):
        payload = {"queries": payload}
    return ClusterRankRequest.model_validate(payload)


async def run(args: argparse.Namespace) -> dict[str, Any]:
    request = load_request(Path(args.input))
    pipeline = ClusterRankPipeline(
        similarity=None if args.no_embeddings else get_similarity_provider(),
        labeler=None if args.no_labeling else build_topic_labeler(),
        options=build_options(args),
    )
    result = await pipeline.run(
        request.queries,
        request.company_vector or request.company_profile,
    )
    return {
        "topics": [topic.model_dump(mode="json") for topic in result.topics],
        "diagnostics": result.diagnostics.to_dict(),
    }


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging()

    try:
        output = asyncio.run(run(args))
    except (OSError, ValueError, QueryInsightsError) as e:
        logger.error("Cluster & rank failed", extra={"input": args.input, "error": str(e)})
        return 1

    rendered = json.dumps(output, indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(rendered + "\n", encoding="utf-8")
    else:
        sys.stdout.write(rendered + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
