"""Core package containing configuration and database setup."""
from zonewatch.core.config import get_settings, Settings
from zonewatch.core.database import get_db, init_db, close_db, Base, AsyncSessionLocal

__all__ = [
    "get_settings",
    "Settings",
    "get_db",
    "init_db",
    "close_db",
    "Base",
    "AsyncSessionLocal",
]
