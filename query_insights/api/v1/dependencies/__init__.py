"""Reusable API dependencies shared across v1 routes."""

from query_insights.api.v1.dependencies.collaborators import (
    Labeler,
    Options,
    Similarity,
    get_ranking_options,
    get_similarity_provider,
    get_topic_labeler,
)

__all__ = [
    "Labeler",
    "Options",
    "Similarity",
    "get_ranking_options",
    "get_similarity_provider",
    "get_topic_labeler",
]
