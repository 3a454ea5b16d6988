"""
SQLAlchemy database models.
"""
from typing import Optional

from sqlalchemy import Integer, String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from zonewatch.core.database import Base


class Zone(Base):
    """User-defined geographic polygon that sessions can cycle through."""
    __tablename__ = "areas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    polygon: Mapped[list] = mapped_column(JSON, nullable=False)  # [[lat, lon], ...]
    min_altitude: Mapped[Optional[int]] = mapped_column(Integer)  # feet
    max_altitude: Mapped[Optional[int]] = mapped_column(Integer)  # feet
