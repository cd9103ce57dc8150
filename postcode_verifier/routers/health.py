"""
Health check and monitoring endpoints.

Readiness covers both things a validation needs: the database for the
verify log and an AusPost client holding an API key.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from postcode_verifier.config import settings
from postcode_verifier.database import Database, get_db
from postcode_verifier.models import HealthStatus
from postcode_verifier.services.auspost import AusPostClient, get_auspost_client

router = APIRouter(tags=["monitoring"])

# Track application start time
START_TIME = time.time()


def _auspost_state(client: AusPostClient) -> str:
    return "configured" if client.api_key else "not configured"


@router.get("/health", response_model=HealthStatus)
async def health_check(
    db: Database = Depends(get_db),
    client: AusPostClient = Depends(get_auspost_client)
):
    """
    Health check endpoint.

    Reports database connectivity, whether AusPost can be called, uptime
    and version. AusPost itself is not contacted.
    """
    db_healthy = await db.health_check()
    auspost = _auspost_state(client)

    return HealthStatus(
        status="healthy" if db_healthy and client.api_key else "unhealthy",
        version=settings.app_version,
        database="connected" if db_healthy else "disconnected",
        auspost=auspost,
        uptime_seconds=time.time() - START_TIME,
        timestamp=datetime.now(timezone.utc)
    )


@router.get("/health/live")
async def liveness_check():
    """Liveness check. Does not check dependencies."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    db: Database = Depends(get_db),
    client: AusPostClient = Depends(get_auspost_client)
):
    """Readiness check. 503 until validations can be served."""
    reasons = []
    if not await db.health_check():
        reasons.append("database disconnected")
    if not client.api_key:
        reasons.append("AusPost API key not configured")

    if reasons:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "reasons": reasons}
        )

    return {"status": "ready"}


@router.get("/metrics")
async def metrics():
    """Prometheus metrics in text format."""
    if not settings.enable_metrics:
        return Response(status_code=status.HTTP_404_NOT_FOUND)

    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get("/info")
async def info(client: AusPostClient = Depends(get_auspost_client)):
    """Service name, version, environment and AusPost endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "auspost_url": client.base_url,
        "auspost": _auspost_state(client),
        "uptime_seconds": time.time() - START_TIME
    }
