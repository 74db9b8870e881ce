"""
Monitoring endpoints.

Provides health checks for load balancers and container orchestration.
"""
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from backend.crs_engine import __version__ as engine_version

router = APIRouter()

APP_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    version: str = APP_VERSION
    engine_version: str = engine_version


@router.get("/health", response_model=HealthResponse, tags=["Monitoring"])
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the server is running.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
