"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter

from quizhub.api.v1 import health, leaderboard, test_results

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(
    test_results.router, prefix="/test-results", tags=["test-results"]
)
api_router.include_router(
    leaderboard.router, prefix="/leaderboard", tags=["leaderboard"]
)
