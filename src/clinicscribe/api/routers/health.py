"""
Health check endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..deps import AppSettingsDep
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    timestamp: datetime
    version: str
    service: str


@router.get("/", response_model=ApiResponse[HealthResponse])
async def health_check(request: Request, settings: AppSettingsDep):
    """
    Health check endpoint.

    Returns the current status of the service.
    """
    return ok(request, data=HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        service=settings.app_name,
    ), message="OK")


@router.get("/ready", response_model=ApiResponse[dict])
async def readiness_check(request: Request, settings: AppSettingsDep):
    """
    Readiness check endpoint.

    Reports which outbound services are configured. Dictation works without
    either; note generation needs the notes API and auto-save needs the
    records API.
    """
    checks = {
        "notes_api": "configured" if settings.notes_api.base_url else "not_configured",
        "records_api": "configured" if settings.records_api.enabled else "not_configured",
    }
    status = "ready" if settings.notes_api.base_url else "degraded"
    return ok(request, data={"status": status, "checks": checks}, message=status)
