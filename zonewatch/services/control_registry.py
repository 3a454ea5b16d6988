"""
Connection registry for external control.

Tracks which session and role each live socket belongs to in a side table
keyed by the socket object, so a disconnect can be cleaned up without
scanning every session.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from zonewatch.schemas import ReportedView
from zonewatch.services.control_broadcast import StateBroadcaster
from zonewatch.services.control_sessions import (
    ControlSession, SessionStore, ViewState,
    default_range, is_radar_mode, range_domain,
)
from zonewatch.services.metrics import CONTROL_CLIENTS

logger = logging.getLogger(__name__)


class ClientRole(str, Enum):
    VIEWER = "viewer"
    CONTROLLER = "controller"


@dataclass(frozen=True)
class ClientRegistration:
    session_id: str
    role: ClientRole


def apply_reported_view(view: ViewState, reported: ReportedView) -> bool:
    """
    Overwrite a session view with what a viewer says it is showing.

    The reported mode is taken as-is (callers validate it first). The reported
    range is taken only if it belongs to the resulting mode's domain; if the
    mode moved between the radar and zone domains without a usable range, the
    range snaps to that domain's default.

    Returns True if anything changed.
    """
    changed = False

    if reported.mode and reported.mode != view.mode:
        view.mode = reported.mode
        changed = True
        if not is_radar_mode(view.mode):
            view.selected_aircraft = None

    domain = range_domain(view.mode)
    if reported.range is not None and reported.range in domain:
        new_range = domain[domain.index(reported.range)]
        if new_range != view.range:
            view.range = new_range
            changed = True

    if view.range not in domain:
        view.range = default_range(view.mode)
        changed = True

    return changed


class ConnectionRegistry:
    """Maps sockets to their session and role."""

    def __init__(self, store: SessionStore, broadcaster: StateBroadcaster):
        self._store = store
        self._broadcaster = broadcaster
        self._clients: dict = {}

    def __len__(self) -> int:
        return len(self._clients)

    def get_registration(self, websocket) -> Optional[ClientRegistration]:
        return self._clients.get(websocket)

    def _attach(self, session: ControlSession, websocket, role: ClientRole):
        previous = self._clients.get(websocket)
        if previous and previous.session_id != session.id:
            # Socket switched sessions; stop it pinning the old one
            self._detach(websocket, previous)

        if role is ClientRole.VIEWER:
            session.viewers.add(websocket)
        else:
            session.controllers.add(websocket)

        self._clients[websocket] = ClientRegistration(session.id, role)
        self._update_gauges()

    def _detach(self, websocket, registration: ClientRegistration):
        session = self._store.peek_session(registration.session_id)
        if session:
            session.viewers.discard(websocket)
            session.controllers.discard(websocket)

    def _update_gauges(self):
        viewers = sum(1 for r in self._clients.values() if r.role is ClientRole.VIEWER)
        CONTROL_CLIENTS.labels(role=ClientRole.VIEWER.value).set(viewers)
        CONTROL_CLIENTS.labels(role=ClientRole.CONTROLLER.value).set(len(self._clients) - viewers)

    async def register_viewer(
        self,
        session_id: str,
        websocket,
        reported_view: Optional[ReportedView] = None,
    ) -> bool:
        """
        Attach a viewer socket to a session.

        A viewer that reports a view differing from the session's becomes the
        source of truth: the session adopts the reported view and the change
        is pushed to the session's controllers. The new viewer then receives
        the (possibly just updated) state.
        """
        session = self._store.get_session(session_id)
        if not session:
            return False

        self._attach(session, websocket, ClientRole.VIEWER)

        if reported_view is not None and apply_reported_view(session.current_view, reported_view):
            logger.info(
                f"Session {session_id} synced to viewer view "
                f"{session.current_view.mode}/{session.current_view.range}"
            )
            await self._broadcaster.broadcast_to_controllers(session)

        await self._broadcaster.send_state(websocket, session)
        return True

    async def register_controller(self, session_id: str, websocket) -> bool:
        """Attach a controller socket to a session and send it the current state."""
        session = self._store.get_session(session_id)
        if not session:
            return False

        self._attach(session, websocket, ClientRole.CONTROLLER)
        await self._broadcaster.send_state(websocket, session)
        return True

    def unregister_client(self, websocket) -> Optional[ClientRegistration]:
        """Remove a socket from its session. Safe for unknown sockets."""
        registration = self._clients.pop(websocket, None)
        if registration is None:
            return None

        self._detach(websocket, registration)
        self._update_gauges()
        logger.debug(f"Unregistered {registration.role.value} from session {registration.session_id}")
        return registration
