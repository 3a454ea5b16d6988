"""
Application configuration using Pydantic settings.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (zone directory)
    database_url: str = "sqlite+aiosqlite:///./zonewatch.db"

    # Antenna location, used as radar center
    antenna_lat: float = 38.9072
    antenna_lon: float = -77.0369

    # External control sessions
    control_cleanup_interval: int = 300  # Sweep every 5 minutes
    control_session_timeout: int = 1800  # Evict idle sessions after 30 minutes
    control_receive_timeout: float = 60.0  # Keepalive after this much silence

    # Logging
    log_level: str = "INFO"

    # Server
    port: int = 3000

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
