"""
Zone management API endpoints.

Zones are the polygons that control sessions cycle through in MODE. Changes
here are picked up by the very next mode change; sessions parked on a deleted
zone keep their reference until they move.
"""
from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from zonewatch.core import get_db
from zonewatch.models import Zone
from zonewatch.schemas import ZoneCreate, ZoneUpdate, ZoneResponse, ZoneListResponse

router = APIRouter(prefix="/api/v1/zones", tags=["Zones"])


def _geojson_polygon(payload: ZoneCreate) -> list:
    """First polygon ring of a FeatureCollection, as [lat, lon] pairs."""
    try:
        ring = payload.features[0]["geometry"]["coordinates"][0]
        return [[float(lat), float(lon)] for lon, lat, *_ in ring]
    except (TypeError, KeyError, IndexError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid GeoJSON FeatureCollection")


def _validate_altitudes(min_altitude, max_altitude):
    if min_altitude is not None and min_altitude < 0:
        raise HTTPException(status_code=400, detail="Invalid min_altitude value")
    if max_altitude is not None and max_altitude < 0:
        raise HTTPException(status_code=400, detail="Invalid max_altitude value")
    if min_altitude is not None and max_altitude is not None and min_altitude > max_altitude:
        raise HTTPException(status_code=400, detail="min_altitude cannot be greater than max_altitude")


async def _get_zone_or_404(db: AsyncSession, zone_id: int) -> Zone:
    result = await db.execute(select(Zone).where(Zone.id == zone_id))
    zone = result.scalar_one_or_none()
    if not zone:
        raise HTTPException(status_code=404, detail="Zone not found")
    return zone


@router.get(
    "",
    response_model=ZoneListResponse,
    summary="List Zones",
    description="All zones in mode-cycle order (ascending id).",
)
async def list_zones(db: AsyncSession = Depends(get_db)):
    """List zones."""
    result = await db.execute(select(Zone).order_by(Zone.id))
    zones = list(result.scalars())
    return {"zones": zones, "count": len(zones)}


@router.get(
    "/{zone_id}",
    response_model=ZoneResponse,
    summary="Get Zone",
    responses={404: {"description": "Zone not found"}},
)
async def get_zone(
    zone_id: int = Path(..., description="Zone ID"),
    db: AsyncSession = Depends(get_db),
):
    """Get a single zone."""
    return await _get_zone_or_404(db, zone_id)


@router.post(
    "",
    response_model=ZoneResponse,
    status_code=201,
    summary="Create Zone",
    description="""
Create a zone from a name and a polygon of `[lat, lon]` pairs:
```json
{"name": "Helipad", "polygon": [[38.90, -77.04], [38.91, -77.04], [38.91, -77.03]]}
```

A GeoJSON FeatureCollection is also accepted; the outer ring of the first
feature is used (GeoJSON `[lon, lat]` order is converted).
    """,
    responses={400: {"description": "Invalid payload"}},
)
async def create_zone(payload: ZoneCreate, db: AsyncSession = Depends(get_db)):
    """Create a zone."""
    polygon = payload.polygon
    if polygon is None and payload.type == "FeatureCollection":
        polygon = _geojson_polygon(payload)

    if not payload.name or not polygon:
        raise HTTPException(status_code=400, detail="Invalid payload")
    _validate_altitudes(payload.min_altitude, payload.max_altitude)

    zone = Zone(
        name=payload.name,
        polygon=polygon,
        min_altitude=payload.min_altitude,
        max_altitude=payload.max_altitude,
    )
    db.add(zone)
    await db.commit()
    await db.refresh(zone)
    return zone


@router.patch(
    "/{zone_id}",
    response_model=ZoneResponse,
    summary="Update Zone",
    responses={400: {"description": "Invalid altitude"}, 404: {"description": "Zone not found"}},
)
async def update_zone(
    payload: ZoneUpdate,
    zone_id: int = Path(..., description="Zone ID"),
    db: AsyncSession = Depends(get_db),
):
    """Update a zone's name, polygon or altitude bounds."""
    zone = await _get_zone_or_404(db, zone_id)
    updates = payload.model_dump(exclude_unset=True)

    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    if "name" in updates and not updates["name"]:
        raise HTTPException(status_code=400, detail="Invalid name")
    if "polygon" in updates and not updates["polygon"]:
        raise HTTPException(status_code=400, detail="Invalid polygon")

    _validate_altitudes(
        updates.get("min_altitude", zone.min_altitude),
        updates.get("max_altitude", zone.max_altitude),
    )

    for key, value in updates.items():
        setattr(zone, key, value)

    await db.commit()
    await db.refresh(zone)
    return zone


@router.delete(
    "/{zone_id}",
    status_code=204,
    summary="Delete Zone",
    responses={404: {"description": "Zone not found"}},
)
async def delete_zone(
    zone_id: int = Path(..., description="Zone ID"),
    db: AsyncSession = Depends(get_db),
):
    """Delete a zone."""
    zone = await _get_zone_or_404(db, zone_id)
    await db.delete(zone)
    await db.commit()
