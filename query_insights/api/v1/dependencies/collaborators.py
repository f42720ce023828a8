"""Collaborator dependencies for ranking routes."""

import logging
from typing import Annotated

from fastapi import Depends

from query_insights.agents.topic_labeler import build_topic_labeler
from query_insights.config import settings
from query_insights.integrations.cache import get_embedding_cache
from query_insights.services.ranking.aggregation import TopicLabeler
from query_insights.services.ranking.options import RankingOptions
from query_insights.services.ranking.similarity import (
    EmbeddingSimilarityAdapter,
    SimilarityProvider,
)

logger = logging.getLogger(__name__)


def get_similarity_provider() -> SimilarityProvider | None:
    """Embedding-backed similarity, or None when no key is configured."""
    if not settings.embeddings_enabled:
        logger.info("Embeddings disabled, relevance will be neutral")
        return None
    return EmbeddingSimilarityAdapter(cache=get_embedding_cache())


def get_topic_labeler() -> TopicLabeler | None:
    """LLM topic labeler, or None for extractive labels only."""
    return build_topic_labeler()


def get_ranking_options() -> RankingOptions:
    return RankingOptions.from_settings()


Similarity = Annotated[SimilarityProvider | None, Depends(get_similarity_provider)]
Labeler = Annotated[TopicLabeler | None, Depends(get_topic_labeler)]
Options = Annotated[RankingOptions, Depends(get_ranking_options)]
