"""
State broadcaster for external control sessions.

Serializes a session's display state and pushes it to sockets. Delivery is
fire-and-forget: sockets that are not connected are skipped and send failures
are logged, never retried. The next state change or a STATE_REQUEST
resynchronizes a client that missed an update.
"""
import logging
from typing import Iterable, Optional

from starlette.websockets import WebSocketState

from zonewatch.services.control_sessions import ControlSession, SessionStore
from zonewatch.services.metrics import CONTROL_BROADCASTS

logger = logging.getLogger(__name__)


class StateBroadcaster:
    """Pushes STATE_UPDATE and SELECT_AIRCRAFT messages to session sockets."""

    def __init__(self, store: Optional[SessionStore] = None):
        self._store = store

    @staticmethod
    def state_message(session: ControlSession) -> dict:
        return {
            "type": "STATE_UPDATE",
            "sessionId": session.id,
            "state": session.current_view.to_wire(),
        }

    @staticmethod
    def select_message(session: ControlSession, direction: str) -> dict:
        return {
            "type": "SELECT_AIRCRAFT",
            "sessionId": session.id,
            "direction": direction,
        }

    async def send_to_socket(self, websocket, message: dict) -> bool:
        """Send a message to a single WebSocket if it is connected."""
        try:
            if websocket.client_state == WebSocketState.CONNECTED:
                await websocket.send_json(message)
                return True
        except Exception as e:
            logger.debug(f"Failed to send to WebSocket: {e}")
        return False

    async def _send_many(self, sockets: Iterable, message: dict) -> int:
        delivered = 0
        # Snapshot: sockets may unregister while we await sends
        for websocket in list(sockets):
            if await self.send_to_socket(websocket, message):
                delivered += 1
        return delivered

    async def send_state(self, websocket, session: ControlSession) -> bool:
        """Push current state to one socket only."""
        return await self.send_to_socket(websocket, self.state_message(session))

    async def broadcast_state(self, session: ControlSession) -> tuple[int, int]:
        """Push current state to every viewer and controller of a session."""
        message = self.state_message(session)
        viewers = list(session.viewers)
        controllers = list(session.controllers)

        viewer_count = await self._send_many(viewers, message)
        controller_count = await self._send_many(controllers, message)
        CONTROL_BROADCASTS.labels(kind="state").inc()

        logger.info(
            f"State update broadcast to {viewer_count} viewers, "
            f"{controller_count} controllers (session {session.id})"
        )

        if self._store is not None:
            await self._store.notify_state_change(session)

        return viewer_count, controller_count

    async def broadcast_to_controllers(self, session: ControlSession) -> int:
        """Push current state to the controllers of a session only."""
        message = self.state_message(session)
        count = await self._send_many(session.controllers, message)
        CONTROL_BROADCASTS.labels(kind="controllers").inc()
        logger.debug(f"State sync sent to {count} controllers (session {session.id})")

        if self._store is not None:
            await self._store.notify_state_change(session)

        return count

    async def send_select(self, session: ControlSession, direction: str) -> int:
        """Relay an aircraft selection step to the viewers of a session."""
        message = self.select_message(session, direction)
        count = await self._send_many(session.viewers, message)
        CONTROL_BROADCASTS.labels(kind="select").inc()
        logger.debug(f"Select {direction} relayed to {count} viewers (session {session.id})")
        return count
