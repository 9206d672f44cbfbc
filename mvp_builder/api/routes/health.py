"""
Health check endpoints.

Provides system health information for monitoring.
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
import structlog

from mvp_builder.core.config import settings
from mvp_builder.persistence.database import check_database_health
from mvp_builder.services.integration_status import get_health_report, get_integration_status

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        200 with the report when healthy, 503 when degraded (missing model
        key or unreachable database).
    """
    db_health = await check_database_health(settings.database_path)
    report = get_health_report(settings, db_health)

    if report["status"] != "healthy":
        log.warning("health_degraded", missing=report["missing"], database=db_health["status"])
        return JSONResponse(status_code=503, content=report)

    return report


@router.get("/health/live")
async def liveness():
    """
    Kubernetes-style liveness probe.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness():
    """
    Kubernetes-style readiness probe.

    Returns 200 once storage is reachable; a missing model key does not make
    the wizard unready since every stage has a fallback.
    """
    db_health = await check_database_health(settings.database_path)

    if db_health["status"] not in ("healthy", "memory"):
        raise HTTPException(status_code=503, detail="Database not ready")

    return {"status": "ready"}


@router.get("/integrations/status")
async def integrations_status():
    """Which optional integrations are configured."""
    return get_integration_status(settings)
