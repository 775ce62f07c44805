"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from fastapi import APIRouter

from rasterizer.config.settings import get_settings
from rasterizer.models.schemas import HealthStatus

router = APIRouter(prefix="/api/v1", tags=["Health"])


@router.get("/health")
async def health_check() -> HealthStatus:
    """Basic health check endpoint."""
    return HealthStatus(status="healthy", version=get_settings().app_version)
