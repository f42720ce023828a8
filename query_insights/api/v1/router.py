"""API v1 router aggregator."""

from fastapi import APIRouter

from query_insights.api.v1.steps import routes as steps

api_router = APIRouter()

api_router.include_router(steps.router, prefix="/steps", tags=["Steps"])
