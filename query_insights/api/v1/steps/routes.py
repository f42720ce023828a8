"""Pipeline step endpoints: cluster-rank and provenance."""

import logging

from fastapi import APIRouter, HTTPException, status

from query_insights.api.v1.dependencies import Labeler, Options, Similarity
from query_insights.api.v1.steps.constants import (
    COMPANY_REFERENCE_REQUIRED_DETAIL,
    MAX_QUERIES_PER_REQUEST,
)
from query_insights.schemas.query import InsightsOutput
from query_insights.schemas.steps import (
    ClusterRankRequest,
    ClusterRankResponse,
    ProvenanceRequest,
)
from query_insights.services.insights import build_insights_output
from query_insights.services.ranking import ClusterRankPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/cluster-rank",
    response_model=ClusterRankResponse,
    summary="Cluster and rank queries into topics",
)
async def cluster_rank(
    request: ClusterRankRequest,
    similarity: Similarity,
    labeler: Labeler,
    options: Options,
) -> ClusterRankResponse:
    """Normalize, score, cluster and label enriched queries."""
    if request.company_profile is None and not request.company_vector:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=COMPANY_REFERENCE_REQUIRED_DETAIL,
        )
    if len(request.queries) > MAX_QUERIES_PER_REQUEST:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {MAX_QUERIES_PER_REQUEST} queries per request",
        )

    reference = request.company_vector or request.company_profile
    pipeline = ClusterRankPipeline(similarity=similarity, labeler=labeler, options=options)
    result = await pipeline.run(request.queries, reference)

    return ClusterRankResponse(
        topics=result.topics,
        count=len(result.topics),
        total_queries=len(request.queries),
        diagnostics=result.diagnostics.to_dict(),
    )


@router.post(
    "/provenance",
    response_model=InsightsOutput,
    summary="Attach provenance and evidence confidence",
)
async def provenance(request: ProvenanceRequest) -> InsightsOutput:
    """Build the final insights document for ranked topics."""
    return build_insights_output(
        request.topics,
        request.queries,
        company=request.company,
        geo=request.geo,
        lang=request.lang,
        seeds_count=request.seeds_count,
    )
