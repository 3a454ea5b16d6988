"""Tests for zone mode references and the database zone directory"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from zonewatch.models import Zone
from zonewatch.core.database import get_async_database_url
from zonewatch.services.zones import DatabaseZoneDirectory, ZoneInfo, parse_zone_id, zone_mode


class TestZoneModes:
    """Tests for zone_<id> mode strings"""

    def test_zone_mode(self):
        assert zone_mode(3) == "zone_3"

    def test_parse_zone_id(self):
        assert parse_zone_id("zone_3") == 3
        assert parse_zone_id("zone_120") == 120

    def test_parse_rejects_other_modes(self):
        assert parse_zone_id("radar") is None
        assert parse_zone_id("zone_") is None
        assert parse_zone_id("zone_-1") is None
        assert parse_zone_id("zone_1a") is None
        assert parse_zone_id("") is None
        assert parse_zone_id(None) is None

    def test_zone_info_mode(self):
        assert ZoneInfo(id=7, name="Ramp").mode == "zone_7"


class TestDatabaseUrl:
    """Tests for async driver selection"""

    def test_postgres_uses_asyncpg(self):
        assert get_async_database_url("postgresql://u:p@db/zones") == "postgresql+asyncpg://u:p@db/zones"

    def test_sqlite_uses_aiosqlite(self):
        assert get_async_database_url("sqlite:///./zones.db") == "sqlite+aiosqlite:///./zones.db"

    def test_async_url_unchanged(self):
        url = "sqlite+aiosqlite:///./zones.db"
        assert get_async_database_url(url) == url


@pytest.mark.asyncio
class TestDatabaseZoneDirectory:
    """Tests for the areas-table backed directory"""

    async def test_empty(self, db_session: AsyncSession, db_engine):
        directory = DatabaseZoneDirectory(async_sessionmaker(db_engine, class_=AsyncSession))
        assert await directory.list_zones() == []

    async def test_ordered_by_id(self, db_session: AsyncSession, db_engine):
        db_session.add_all([
            Zone(name="North Field", polygon=[[47.9, -122.0], [47.95, -122.0], [47.95, -121.9]]),
            Zone(name="Helipad", polygon=[[47.8, -122.0], [47.85, -122.0], [47.85, -121.9]], max_altitude=2000),
        ])
        await db_session.commit()

        directory = DatabaseZoneDirectory(async_sessionmaker(db_engine, class_=AsyncSession))
        zones = await directory.list_zones()

        assert [z.name for z in zones] == ["North Field", "Helipad"]
        assert zones[0].id < zones[1].id
        assert zones[1].max_altitude == 2000
        assert zones[0].polygon[0] == [47.9, -122.0]

    async def test_get_zone(self, db_session: AsyncSession, db_engine):
        zone = Zone(name="Ramp", polygon=[[47.9, -122.0], [47.95, -122.0], [47.95, -121.9]])
        db_session.add(zone)
        await db_session.commit()
        await db_session.refresh(zone)

        directory = DatabaseZoneDirectory(async_sessionmaker(db_engine, class_=AsyncSession))
        found = await directory.get_zone(zone.id)

        assert found.name == "Ramp"
        assert found.mode == f"zone_{zone.id}"
        assert await directory.get_zone(zone.id + 100) is None

    async def test_sees_changes_immediately(self, db_session: AsyncSession, db_engine):
        directory = DatabaseZoneDirectory(async_sessionmaker(db_engine, class_=AsyncSession))
        assert await directory.list_zones() == []

        db_session.add(Zone(name="Ramp", polygon=[[47.9, -122.0], [47.95, -122.0], [47.95, -121.9]]))
        await db_session.commit()

        assert len(await directory.list_zones()) == 1
