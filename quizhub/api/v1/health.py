"""
Health check and status endpoints.
"""
from fastapi import APIRouter

from quizhub.core import settings
from quizhub.core.datetime_utils import utc_now

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Liveness probe with service name and version.
    """
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@router.get("/ping")
async def ping():
    return {"message": "pong"}
