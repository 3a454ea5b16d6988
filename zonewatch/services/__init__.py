"""Services package."""
from zonewatch.services.zones import ZoneDirectory, ZoneInfo, DatabaseZoneDirectory
from zonewatch.services.control_sessions import SessionStore, ControlSession, ViewState
from zonewatch.services.control_broadcast import StateBroadcaster
from zonewatch.services.control_registry import ConnectionRegistry, ClientRole
from zonewatch.services.control_protocol import (
    ControlProtocolHandler, ControlService, serve_control_socket
)

__all__ = [
    # Zone directory
    "ZoneDirectory",
    "ZoneInfo",
    "DatabaseZoneDirectory",
    # External control
    "SessionStore",
    "ControlSession",
    "ViewState",
    "StateBroadcaster",
    "ConnectionRegistry",
    "ClientRole",
    "ControlProtocolHandler",
    "ControlService",
    "serve_control_socket",
]
