"""
System status and health API endpoints.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import select, func, text
from sqlalchemy.ext.asyncio import AsyncSession

from zonewatch import __version__
from zonewatch.core import get_settings, get_db
from zonewatch.models import Zone
from zonewatch.routers.control import get_control_service
from zonewatch.schemas import HealthResponse, StatusResponse
from zonewatch.services.control_protocol import ControlService

router = APIRouter(prefix="/api/v1", tags=["System"])
settings = get_settings()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="""
Check the health status of system components.

- **database**: zone directory connection and latency
- **control**: in-memory session store

Returns `healthy` or `unhealthy`.
    """,
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    service: ControlService = Depends(get_control_service),
):
    """Health check endpoint."""
    services = {}
    overall_status = "healthy"

    try:
        start = datetime.utcnow()
        await db.execute(text("SELECT 1"))
        latency = (datetime.utcnow() - start).total_seconds() * 1000
        services["database"] = {"status": "up", "latency_ms": round(latency, 2)}
    except Exception as e:
        services["database"] = {"status": "down", "error": str(e)}
        overall_status = "unhealthy"

    services["control"] = {"status": "up", "sessions": len(service.store)}

    return {
        "status": overall_status,
        "services": services,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Service Status",
)
async def get_status(
    db: AsyncSession = Depends(get_db),
    service: ControlService = Depends(get_control_service),
):
    """Zone count, control session statistics and radar center."""
    zones = (await db.execute(select(func.count(Zone.id)))).scalar() or 0

    return {
        "version": __version__,
        "zones": zones,
        "control": service.get_stats(),
        "location": {"lat": settings.antenna_lat, "lon": settings.antenna_lon},
    }


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    response_class=Response,
)
async def metrics():
    """Prometheus exposition of process and control metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
