"""
External control session API endpoints.

HTTP side of the control subsystem: creating sessions, inspecting their state,
and resolving what a controlled page should display. Live control itself runs
over the `/ws/control` WebSocket.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Path
from starlette.requests import HTTPConnection

from zonewatch.core import get_settings
from zonewatch.schemas import (
    ControlSessionResponse, ControlViewResponse, ControlStatusResponse
)
from zonewatch.services.control_protocol import ControlService
from zonewatch.services.control_sessions import ControlSession, is_radar_mode
from zonewatch.services.zones import parse_zone_id

router = APIRouter(prefix="/api/v1/control", tags=["Control"])
settings = get_settings()


def get_control_service(connection: HTTPConnection) -> ControlService:
    """Dependency returning the application's control service."""
    return connection.app.state.control


def _session_response(service: ControlService, session: ControlSession) -> dict:
    return {
        "session_id": session.id,
        "state": session.current_view.to_wire(),
        "has_controllers": service.store.has_controllers(session.id),
        "viewers": len(session.viewers),
        "controllers": len(session.controllers),
    }


@router.post(
    "/sessions",
    response_model=ControlSessionResponse,
    summary="Create Control Session",
    description="""
Create a control session, or return an existing one.

Without `session_id` a fresh 4-digit ID is generated. With `session_id` the
call is idempotent: an existing session is returned unchanged.
    """,
)
async def create_session(
    session_id: Optional[str] = Query(None, min_length=1, max_length=64, description="Session ID to create"),
    service: ControlService = Depends(get_control_service),
):
    """Create (or fetch) a control session."""
    sid = service.store.create_session(session_id)
    session = service.store.get_session(sid)
    return _session_response(service, session)


@router.get(
    "/sessions/{session_id}",
    response_model=ControlSessionResponse,
    summary="Get Control Session",
    responses={404: {"description": "Session not found"}},
)
async def get_session(
    session_id: str = Path(..., description="Session ID"),
    service: ControlService = Depends(get_control_service),
):
    """Get a session's state without counting it as activity."""
    session = service.store.peek_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return _session_response(service, session)


@router.get(
    "/sessions/{session_id}/view",
    response_model=ControlViewResponse,
    summary="Resolve Controlled View",
    description="""
Everything a controlled page needs to render the session's current screen.

Visiting a controlled page brings its session into existence. In radar mode
the response carries the radar center and, when zones are enabled, the zone
polygons to overlay. In zone mode it carries the active zone; a zone that has
since been deleted yields 404.
    """,
    responses={404: {"description": "Zone not found"}},
)
async def get_view(
    session_id: str = Path(..., description="Session ID"),
    service: ControlService = Depends(get_control_service),
):
    """Resolve the display context for a controlled page."""
    service.store.create_session(session_id)
    session = service.store.get_session(session_id)
    view = session.current_view

    response = {
        "session_id": session.id,
        "state": view.to_wire(),
        "has_controllers": service.store.has_controllers(session.id),
        "center": {"lat": settings.antenna_lat, "lon": settings.antenna_lon},
        "zone": None,
        "overlay_zones": [],
    }

    if is_radar_mode(view.mode):
        if view.zones_enabled:
            response["overlay_zones"] = [z.to_dict() for z in await service.zones.list_zones()]
    else:
        zone = await service.zones.get_zone(parse_zone_id(view.mode))
        if not zone:
            raise HTTPException(status_code=404, detail="Zone not found")
        response["zone"] = zone.to_dict()

    return response


@router.get(
    "/status",
    response_model=ControlStatusResponse,
    summary="Control Status",
)
async def get_status(service: ControlService = Depends(get_control_service)):
    """Session store statistics."""
    return service.get_stats()
