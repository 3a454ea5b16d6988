"""
Shared pytest fixtures for ZoneWatch tests.

Provides fixtures for database sessions, HTTP clients, an isolated control
service per test, and in-memory stand-ins for sockets and the zone directory.
"""
import os
import tempfile
import pytest
import pytest_asyncio
from typing import AsyncGenerator, Optional
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from starlette.websockets import WebSocketState

# Set test environment variables before importing app
_test_db_dir = tempfile.mkdtemp(prefix="zonewatch-test-")
os.environ.setdefault('DATABASE_URL', f"sqlite+aiosqlite:///{_test_db_dir}/test.db")
os.environ.setdefault('ANTENNA_LAT', '47.9377')
os.environ.setdefault('ANTENNA_LON', '-121.9687')
os.environ.setdefault('CONTROL_SESSION_TIMEOUT', '1800')
os.environ.setdefault('LOG_LEVEL', 'DEBUG')

from zonewatch.main import app
from zonewatch.core.database import Base, get_db
from zonewatch.routers.control import get_control_service
from zonewatch.services.control_protocol import ControlService
from zonewatch.services.zones import ZoneDirectory, ZoneInfo, DatabaseZoneDirectory


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio for async tests."""
    return "asyncio"


# =============================================================================
# Test doubles
# =============================================================================

class FakeWebSocket:
    """Records JSON sent to it. Hashable by identity, like a real socket."""

    def __init__(self, name: str = "ws", fail: bool = False):
        self.name = name
        self.fail = fail
        self.client_state = WebSocketState.CONNECTED
        self.sent: list[dict] = []

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(data)

    def of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.sent if m.get("type") == msg_type]

    def clear(self):
        self.sent.clear()

    def __repr__(self):
        return f"<FakeWebSocket {self.name}>"


class StaticZoneDirectory(ZoneDirectory):
    """Zone directory over a plain list; tests may replace `zones` at will."""

    def __init__(self, zones: Optional[list[ZoneInfo]] = None):
        self.zones = list(zones or [])
        self.calls = 0

    async def list_zones(self) -> list[ZoneInfo]:
        self.calls += 1
        return sorted(self.zones, key=lambda z: z.id)


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_zone(zone_id: int, name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(
        id=zone_id,
        name=name or f"Zone {zone_id}",
        polygon=[[47.90, -121.99], [47.95, -121.99], [47.95, -121.94]],
    )


# =============================================================================
# Control service fixtures
# =============================================================================

@pytest.fixture
def zone_directory():
    """Zone directory holding zones 1 and 2."""
    return StaticZoneDirectory([make_zone(1, "North Field"), make_zone(2, "Helipad")])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def control_service(zone_directory, clock) -> ControlService:
    """Isolated control service; the cleanup sweep is not started."""
    return ControlService(zones=zone_directory, session_timeout=1800, clock=clock)


@pytest.fixture
def make_socket():
    """Factory for FakeWebSocket instances."""
    def _make(name: str = "ws", fail: bool = False) -> FakeWebSocket:
        return FakeWebSocket(name, fail=fail)
    return _make


@pytest.fixture
def zone_factory():
    return make_zone


# =============================================================================
# Database and HTTP fixtures
# =============================================================================

@pytest_asyncio.fixture
async def db_engine():
    """Create async test database engine."""
    database_url = os.getenv("DATABASE_URL")

    # SQLite doesn't support pool_pre_ping
    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url, echo=False)
    else:
        engine = create_async_engine(database_url, echo=False, pool_pre_ping=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async test database session with proper cleanup."""
    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        # Clean up tables before each test
        for table in reversed(Base.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()

        yield session

        await session.rollback()


@pytest.fixture
def db_control_service(db_engine, clock) -> ControlService:
    """Control service reading zones from the test database."""
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    return ControlService(zones=DatabaseZoneDirectory(factory), session_timeout=1800, clock=clock)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, db_control_service: ControlService
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client with database and control service overrides."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_control_service] = lambda: db_control_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def ws_app(control_service):
    """The app wired to the isolated control service, for WebSocket tests."""
    app.dependency_overrides[get_control_service] = lambda: control_service
    yield app
    app.dependency_overrides.clear()
