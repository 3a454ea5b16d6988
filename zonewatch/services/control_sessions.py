"""
External control session store.

A session is a named, shared display context: any number of viewers render
its state and any number of controllers drive it. The store owns the session
table, creation, lookup with activity refresh, and idle eviction.

## Display state

    mode           "radar" or "zone_<id>"
    range          miles when radar  (5, 10, 15, 25, 50, 100; default 10)
                   hours when zone   (1, 4, 12, 24; default 1)
    zonesEnabled   zone polygons drawn on the radar (radar only)

All state lives in process memory; nothing survives a restart.
"""
import asyncio
import inspect
import logging
import random
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional

from zonewatch.services.metrics import CONTROL_SESSIONS
from zonewatch.services.zones import parse_zone_id

logger = logging.getLogger(__name__)

RADAR_MODE = "radar"

RADAR_RANGES = (5, 10, 15, 25, 50, 100)  # miles
ZONE_RANGES = (1, 4, 12, 24)  # hours
DEFAULT_RADAR_RANGE = 10
DEFAULT_ZONE_RANGE = 1

SESSION_ID_MIN = 1000
SESSION_ID_MAX = 9999

DEFAULT_SESSION_TIMEOUT = 30 * 60
DEFAULT_CLEANUP_INTERVAL = 5 * 60


def is_radar_mode(mode: str) -> bool:
    return mode == RADAR_MODE


def is_valid_mode(mode: Optional[str]) -> bool:
    """True for the radar sentinel or a well-formed zone reference."""
    return is_radar_mode(mode) or parse_zone_id(mode) is not None


def range_domain(mode: str) -> tuple:
    """Ordered range values valid for a mode."""
    return RADAR_RANGES if is_radar_mode(mode) else ZONE_RANGES


def default_range(mode: str) -> int:
    return DEFAULT_RADAR_RANGE if is_radar_mode(mode) else DEFAULT_ZONE_RANGE


@dataclass
class ViewState:
    """What a session's viewers are showing."""
    mode: str = RADAR_MODE
    range: int = DEFAULT_RADAR_RANGE
    zones_enabled: bool = False
    selected_aircraft: Optional[str] = None

    def to_wire(self) -> dict:
        return {
            "mode": self.mode,
            "range": self.range,
            "zonesEnabled": self.zones_enabled,
        }

    def copy(self) -> "ViewState":
        return replace(self)


@dataclass(eq=False)
class ControlSession:
    """Shared control context identified by an opaque ID."""
    id: str
    current_view: ViewState = field(default_factory=ViewState)
    viewers: set = field(default_factory=set)
    controllers: set = field(default_factory=set)
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)

    def has_clients(self) -> bool:
        return bool(self.viewers) or bool(self.controllers)

    def touch(self, now: float):
        self.last_activity = now


StateListener = Callable[[str, ViewState], Any]


class SessionStore:
    """In-memory table of session ID -> ControlSession."""

    def __init__(
        self,
        session_timeout: float = DEFAULT_SESSION_TIMEOUT,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self._sessions: dict[str, ControlSession] = {}
        self._session_timeout = session_timeout
        self._clock = clock
        self._rng = rng or random.Random()
        self._listeners: list[StateListener] = []
        self._cleanup_task: Optional[asyncio.Task] = None

    @property
    def session_timeout(self) -> float:
        return self._session_timeout

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    # =========================================================================
    # Creation and lookup
    # =========================================================================

    def generate_session_id(self) -> str:
        """Pick an unused 4-digit ID by rejection sampling."""
        if len(self._sessions) >= SESSION_ID_MAX - SESSION_ID_MIN + 1:
            raise RuntimeError("No free control session IDs")
        while True:
            session_id = str(self._rng.randint(SESSION_ID_MIN, SESSION_ID_MAX))
            if session_id not in self._sessions:
                return session_id

    def create_session(self, session_id: Optional[str] = None) -> str:
        """Create a session, or return the ID unchanged if it already exists."""
        session_id = session_id or self.generate_session_id()

        if session_id not in self._sessions:
            now = self._clock()
            self._sessions[session_id] = ControlSession(
                id=session_id, created_at=now, last_activity=now
            )
            CONTROL_SESSIONS.set(len(self._sessions))
            logger.info(f"Created control session {session_id}")

        return session_id

    def get_session(self, session_id: str) -> Optional[ControlSession]:
        """Look up a session and record client activity on it."""
        session = self._sessions.get(session_id)
        if session:
            session.touch(self._clock())
        return session

    def peek_session(self, session_id: str) -> Optional[ControlSession]:
        """Look up a session without counting it as activity."""
        return self._sessions.get(session_id)

    def has_controllers(self, session_id: str) -> bool:
        session = self._sessions.get(session_id)
        return bool(session and session.controllers)

    # =========================================================================
    # Eviction
    # =========================================================================

    def evict_inactive(self) -> list[str]:
        """Drop sessions with no sockets attached that have been idle too long."""
        now = self._clock()
        evicted = []

        for session_id, session in list(self._sessions.items()):
            if session.has_clients():
                continue
            if now - session.last_activity > self._session_timeout:
                del self._sessions[session_id]
                evicted.append(session_id)
                logger.info(f"Cleaned up inactive session {session_id}")

        if evicted:
            CONTROL_SESSIONS.set(len(self._sessions))
        return evicted

    async def _cleanup_loop(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            try:
                self.evict_inactive()
            except Exception as e:
                logger.error(f"Error cleaning control sessions: {e}")

    def start_cleanup(self, interval: float = DEFAULT_CLEANUP_INTERVAL) -> asyncio.Task:
        """Start the periodic eviction sweep on the running event loop."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop(interval))
            logger.info(f"Control session sweep started (every {interval}s, timeout {self._session_timeout}s)")
        return self._cleanup_task

    async def stop_cleanup(self):
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

    # =========================================================================
    # State change listeners
    # =========================================================================

    def add_listener(self, listener: StateListener):
        """Register a callback invoked with (session_id, ViewState) after each broadcast."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: StateListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def notify_state_change(self, session: ControlSession):
        for listener in list(self._listeners):
            try:
                result = listener(session.id, session.current_view.copy())
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"State listener failed for session {session.id}: {e}")

    # =========================================================================
    # Stats
    # =========================================================================

    def get_stats(self) -> dict:
        return {
            "sessions": len(self._sessions),
            "viewers": sum(len(s.viewers) for s in self._sessions.values()),
            "controllers": sum(len(s.controllers) for s in self._sessions.values()),
            "session_timeout_seconds": int(self._session_timeout),
        }
