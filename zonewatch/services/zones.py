"""
Zone directory.

Read-only view of the defined zones, consumed by the MODE cycle. The directory
is queried fresh on every call so zones created or removed through the REST API
take effect on the very next mode change.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from zonewatch.models import Zone

logger = logging.getLogger(__name__)

ZONE_MODE_PREFIX = "zone_"


def zone_mode(zone_id: int) -> str:
    """Mode reference for a zone, e.g. ``zone_3``."""
    return f"{ZONE_MODE_PREFIX}{zone_id}"


def parse_zone_id(mode: Optional[str]) -> Optional[int]:
    """Extract the zone id from a ``zone_<id>`` mode, or None."""
    if not mode or not mode.startswith(ZONE_MODE_PREFIX):
        return None
    suffix = mode[len(ZONE_MODE_PREFIX):]
    if not (suffix.isascii() and suffix.isdigit()):
        return None
    return int(suffix)


@dataclass(frozen=True)
class ZoneInfo:
    """Zone as seen by the control core."""
    id: int
    name: str
    polygon: list = field(default_factory=list, compare=False)
    min_altitude: Optional[int] = None
    max_altitude: Optional[int] = None

    @property
    def mode(self) -> str:
        return zone_mode(self.id)

    @classmethod
    def from_model(cls, zone: Zone) -> "ZoneInfo":
        return cls(
            id=zone.id,
            name=zone.name,
            polygon=list(zone.polygon or []),
            min_altitude=zone.min_altitude,
            max_altitude=zone.max_altitude,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "polygon": self.polygon,
            "min_altitude": self.min_altitude,
            "max_altitude": self.max_altitude,
        }


class ZoneDirectory:
    """Source of the ordered zone list."""

    async def list_zones(self) -> list[ZoneInfo]:
        raise NotImplementedError

    async def get_zone(self, zone_id: int) -> Optional[ZoneInfo]:
        for zone in await self.list_zones():
            if zone.id == zone_id:
                return zone
        return None


class DatabaseZoneDirectory(ZoneDirectory):
    """Zone directory backed by the ``areas`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_zones(self) -> list[ZoneInfo]:
        async with self._session_factory() as db:
            result = await db.execute(select(Zone).order_by(Zone.id))
            zones = [ZoneInfo.from_model(z) for z in result.scalars()]
        logger.debug(f"Loaded {len(zones)} zones")
        return zones
