"""API routers package."""
from zonewatch.routers import control, zones, system

__all__ = [
    "control",
    "zones",
    "system",
]
