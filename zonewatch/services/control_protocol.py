"""
External control protocol.

Interprets inbound control messages against a session, mutates the session's
display state, and triggers broadcasts.

## Client -> server

    {"type": "REGISTER_VIEWER", "sessionId": "1234", "currentView": {"mode": "radar", "range": 10}}
    {"type": "REGISTER_CONTROLLER", "sessionId": "1234"}
    {"type": "STATE_REQUEST", "sessionId": "1234"}
    {"type": "MODE", "sessionId": "1234", "direction": "forward" | "backward"}
    {"type": "RANGE", "sessionId": "1234", "direction": "forward" | "backward"}
    {"type": "ZONES", "sessionId": "1234"}
    {"type": "SELECT", "sessionId": "1234", "direction": "forward" | "backward"}

## Server -> client

    {"type": "STATE_UPDATE", "sessionId": "1234", "state": {"mode": "zone_1", "range": 4, "zonesEnabled": false}}
    {"type": "SELECT_AIRCRAFT", "sessionId": "1234", "direction": "forward"}
    {"type": "ping", "timestamp": "..."}   keepalive after a quiet period

There is no error frame. Malformed messages, unknown types and unknown
sessions are dropped and logged; the connection stays open.

Every read-modify-write of a session view runs without an intervening await,
so handlers for the same session never interleave on the event loop.
"""
import asyncio
import json
import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from zonewatch.schemas import ControlMessage, ReportedView
from zonewatch.services.control_broadcast import StateBroadcaster
from zonewatch.services.control_registry import ConnectionRegistry
from zonewatch.services.control_sessions import (
    ControlSession, SessionStore, ViewState,
    DEFAULT_CLEANUP_INTERVAL, DEFAULT_SESSION_TIMEOUT, RADAR_MODE,
    default_range, is_radar_mode, is_valid_mode, range_domain,
)
from zonewatch.services.metrics import CONTROL_DROPPED, CONTROL_MESSAGES
from zonewatch.services.zones import ZoneDirectory, parse_zone_id

logger = logging.getLogger(__name__)

MESSAGE_TYPES = frozenset({
    "REGISTER_VIEWER",
    "REGISTER_CONTROLLER",
    "STATE_REQUEST",
    "MODE",
    "RANGE",
    "ZONES",
    "SELECT",
})

FORWARD = "forward"
BACKWARD = "backward"


# =============================================================================
# Algorithms
# =============================================================================

def cycle_mode(modes: list[str], current: str, direction: str) -> str:
    """
    Step through the mode cycle ``[radar, zone_<id1>, ..., zone_<idN>]``.

    A mode that is not in the cycle (its zone was deleted) is treated as
    sitting at index 0.
    """
    if not modes:
        return RADAR_MODE

    index = modes.index(current) if current in modes else 0

    if direction == FORWARD:
        index = (index + 1) % len(modes)
    else:
        index = index - 1
        if index < 0:
            index = len(modes) - 1

    return modes[index]


def apply_mode(view: ViewState, new_mode: str):
    """Switch mode, snapping range when crossing between radar and zones."""
    was_radar = is_radar_mode(view.mode)
    is_radar = is_radar_mode(new_mode)
    view.mode = new_mode

    if was_radar != is_radar:
        view.range = default_range(new_mode)
    if not is_radar:
        view.selected_aircraft = None


def step_range(mode: str, current: Any, direction: str) -> int:
    """Step range within the active mode's domain, wrapping at both ends."""
    domain = range_domain(mode)
    if current in domain:
        index = domain.index(current)
    else:
        index = domain.index(default_range(mode))

    if direction == FORWARD:
        index = (index + 1) % len(domain)
    else:
        index = (index - 1 + len(domain)) % len(domain)

    return domain[index]


# =============================================================================
# Protocol handler
# =============================================================================

class ControlProtocolHandler:
    """Applies control messages to sessions."""

    def __init__(
        self,
        store: SessionStore,
        registry: ConnectionRegistry,
        broadcaster: StateBroadcaster,
        zones: ZoneDirectory,
    ):
        self._store = store
        self._registry = registry
        self._broadcaster = broadcaster
        self.zones = zones

    async def handle_raw(self, websocket, raw):
        """Parse boundary: decode one frame and hand it on."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            CONTROL_DROPPED.labels(reason="malformed").inc()
            logger.warning(f"Dropping unparseable control message: {e}")
            return

        await self.handle_message(websocket, data)

    async def handle_message(self, websocket, data: Any):
        """Validate and dispatch one decoded message. Never raises."""
        if (
            not isinstance(data, dict)
            or not isinstance(data.get("type"), str)
            or data.get("sessionId") in (None, "")
        ):
            CONTROL_DROPPED.labels(reason="malformed").inc()
            logger.warning("Dropping control message without type/sessionId")
            return

        if data["type"] not in MESSAGE_TYPES:
            CONTROL_DROPPED.labels(reason="unknown_type").inc()
            logger.debug(f"Ignoring message type {data['type']!r}")
            return

        try:
            message = ControlMessage.model_validate(data)
        except ValidationError as e:
            CONTROL_DROPPED.labels(reason="malformed").inc()
            logger.warning(f"Dropping invalid {data['type']} message: {e.error_count()} errors")
            return

        try:
            await self._dispatch(websocket, message)
        except Exception as e:
            logger.error(f"Error handling {message.type} for session {message.session_id}: {e}")

    async def _dispatch(self, websocket, message: ControlMessage):
        session_id = message.session_id
        direction = message.direction or FORWARD

        if message.type in ("REGISTER_VIEWER", "REGISTER_CONTROLLER"):
            # Connecting a client is enough to bring a session into existence
            self._store.create_session(session_id)

        session = self._store.get_session(session_id)
        if not session:
            CONTROL_DROPPED.labels(reason="unknown_session").inc()
            logger.info(f"Session not found: {session_id}")
            return

        CONTROL_MESSAGES.labels(type=message.type).inc()

        if message.type == "REGISTER_VIEWER":
            reported = await self._sanitize_reported_view(message.current_view)
            await self._registry.register_viewer(session_id, websocket, reported)
            logger.info(f"Viewer registered for session {session_id}")

        elif message.type == "REGISTER_CONTROLLER":
            await self._registry.register_controller(session_id, websocket)
            logger.info(f"Controller registered for session {session_id}")

        elif message.type == "STATE_REQUEST":
            await self._broadcaster.send_state(websocket, session)

        elif message.type == "MODE":
            logger.info(f"Mode change: {direction} for session {session_id}")
            await self.handle_mode(session, direction)

        elif message.type == "RANGE":
            logger.info(f"Range change: {direction} for session {session_id}")
            await self.handle_range(session, direction)

        elif message.type == "ZONES":
            logger.info(f"Zones toggle for session {session_id}")
            await self.handle_zones(session)

        elif message.type == "SELECT":
            logger.info(f"Select aircraft: {direction} for session {session_id}")
            await self.handle_select(session, direction)

    async def _sanitize_reported_view(self, reported: Optional[ReportedView]) -> Optional[ReportedView]:
        """Drop the parts of a viewer's report that do not name a real mode."""
        if reported is None:
            return None

        mode = reported.mode
        if mode is not None and not is_radar_mode(mode):
            if not is_valid_mode(mode) or await self.zones.get_zone(parse_zone_id(mode)) is None:
                logger.info(f"Ignoring reported mode {mode!r}: no such zone")
                mode = None

        return ReportedView(mode=mode, range=reported.range)

    async def handle_mode(self, session: ControlSession, direction: str):
        zones = await self.zones.list_zones()
        modes = [RADAR_MODE] + [z.mode for z in zones]

        view = session.current_view
        apply_mode(view, cycle_mode(modes, view.mode, direction))

        await self._broadcaster.broadcast_state(session)

    async def handle_range(self, session: ControlSession, direction: str):
        view = session.current_view
        view.range = step_range(view.mode, view.range, direction)

        await self._broadcaster.broadcast_state(session)

    async def handle_zones(self, session: ControlSession):
        view = session.current_view
        if not is_radar_mode(view.mode):
            return

        view.zones_enabled = not view.zones_enabled
        await self._broadcaster.broadcast_state(session)

    async def handle_select(self, session: ControlSession, direction: str):
        # Selection is computed by each viewer from its own aircraft list
        if not is_radar_mode(session.current_view.mode):
            return

        await self._broadcaster.send_select(session, direction)


# =============================================================================
# Service wiring
# =============================================================================

class ControlService:
    """One session store with its broadcaster, registry and protocol handler."""

    def __init__(
        self,
        zones: ZoneDirectory,
        session_timeout: float = DEFAULT_SESSION_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ):
        self.zones = zones
        self.store = SessionStore(session_timeout=session_timeout, clock=clock)
        self.broadcaster = StateBroadcaster(self.store)
        self.registry = ConnectionRegistry(self.store, self.broadcaster)
        self.handler = ControlProtocolHandler(self.store, self.registry, self.broadcaster, zones)

    def start(self, cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL):
        self.store.start_cleanup(cleanup_interval)

    async def stop(self):
        await self.store.stop_cleanup()

    def get_stats(self) -> dict:
        stats = self.store.get_stats()
        stats["registered_sockets"] = len(self.registry)
        return stats


async def serve_control_socket(
    websocket: WebSocket,
    service: ControlService,
    receive_timeout: float = 60.0,
):
    """Handle a control WebSocket connection lifecycle."""
    await websocket.accept()

    try:
        while True:
            try:
                message = await asyncio.wait_for(websocket.receive(), timeout=receive_timeout)
            except asyncio.TimeoutError:
                # Send keepalive ping
                try:
                    await websocket.send_json({"type": "ping", "timestamp": datetime.utcnow().isoformat() + "Z"})
                except Exception:
                    break
                continue

            if message["type"] == "websocket.disconnect":
                break

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            await service.handler.handle_raw(websocket, raw)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.debug(f"Control WebSocket error: {e}")
    finally:
        registration = service.registry.unregister_client(websocket)
        if registration:
            logger.info(
                f"Client disconnected: {registration.role.value} "
                f"(session: {registration.session_id})"
            )
