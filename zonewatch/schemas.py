"""
Pydantic schemas for control messages and REST request/response validation.
"""
from typing import Any, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


Direction = Literal["forward", "backward"]


# ============================================================================
# Control Protocol (WebSocket) Schemas
# ============================================================================

class ReportedView(BaseModel):
    """A viewer's own belief about what it is currently displaying."""
    model_config = ConfigDict(extra="ignore")

    mode: Optional[str] = None
    range: Optional[float] = None

    @field_validator("mode", mode="before")
    @classmethod
    def _mode_must_be_text(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value:
            return value
        return None

    @field_validator("range", mode="before")
    @classmethod
    def _range_must_be_numeric(cls, value: Any) -> Optional[float]:
        if isinstance(value, bool) or value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return number if number > 0 else None


class ControlMessage(BaseModel):
    """Inbound control message (client -> server)."""
    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        json_schema_extra={
            "example": {"type": "MODE", "sessionId": "1234", "direction": "forward"}
        }
    )

    type: str
    session_id: str = Field(..., alias="sessionId", min_length=1)
    direction: Optional[Direction] = None
    current_view: Optional[ReportedView] = Field(None, alias="currentView")

    @field_validator("session_id", mode="before")
    @classmethod
    def _coerce_session_id(cls, value: Any) -> Any:
        # Numeric IDs typed by hand on keypads arrive as JSON numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("current_view", mode="before")
    @classmethod
    def _ignore_non_object_view(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


# ============================================================================
# Control Session Schemas
# ============================================================================

class SessionState(BaseModel):
    """Serialized display state of a session (same shape as STATE_UPDATE.state)."""
    mode: str = Field(..., description="'radar' or 'zone_<id>'", example="radar")
    range: int = Field(..., description="Miles in radar mode, hours in zone mode", example=10)
    zonesEnabled: bool = Field(False, description="Zone overlays drawn on radar")


class ControlSessionResponse(BaseModel):
    """A control session and its attached clients."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "session_id": "1234",
                "state": {"mode": "radar", "range": 10, "zonesEnabled": False},
                "has_controllers": True,
                "viewers": 1,
                "controllers": 1,
            }
        }
    )

    session_id: str
    state: SessionState
    has_controllers: bool = False
    viewers: int = 0
    controllers: int = 0


class ControlViewResponse(BaseModel):
    """Everything a controlled page needs to render the session's current screen."""
    session_id: str
    state: SessionState
    has_controllers: bool = False
    center: dict = Field(default_factory=dict, description="Radar center (antenna position)")
    zone: Optional["ZoneResponse"] = Field(None, description="Active zone when in zone mode")
    overlay_zones: list["ZoneResponse"] = Field(
        default_factory=list, description="Zones drawn on the radar when zonesEnabled"
    )


class ControlStatusResponse(BaseModel):
    """Control session store statistics."""
    sessions: int = 0
    viewers: int = 0
    controllers: int = 0
    registered_sockets: int = 0
    session_timeout_seconds: int = 0


# ============================================================================
# Zone Schemas
# ============================================================================

class ZoneResponse(BaseModel):
    """A geographic zone."""
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "Helipad",
                "polygon": [[38.90, -77.04], [38.91, -77.04], [38.91, -77.03]],
                "min_altitude": None,
                "max_altitude": 2000,
            }
        }
    )

    id: int
    name: str
    polygon: list[list[float]] = Field(default_factory=list, description="[[lat, lon], ...]")
    min_altitude: Optional[int] = None
    max_altitude: Optional[int] = None


class ZoneListResponse(BaseModel):
    """List of zones."""
    zones: list[ZoneResponse] = Field(default_factory=list)
    count: int = 0


class ZoneCreate(BaseModel):
    """Create a zone from a polygon or a GeoJSON FeatureCollection."""
    name: Optional[str] = Field(None, max_length=100)
    polygon: Optional[list[list[float]]] = None
    min_altitude: Optional[int] = None
    max_altitude: Optional[int] = None
    type: Optional[str] = Field(None, description="'FeatureCollection' for GeoJSON input")
    features: Optional[list[dict]] = None


class ZoneUpdate(BaseModel):
    """Partial zone update. Explicit nulls clear altitude bounds."""
    name: Optional[str] = Field(None, max_length=100)
    polygon: Optional[list[list[float]]] = None
    min_altitude: Optional[int] = None
    max_altitude: Optional[int] = None


# ============================================================================
# System Schemas
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    services: dict = Field(default_factory=dict)
    timestamp: str


class StatusResponse(BaseModel):
    """Service status response."""
    version: str
    zones: int = 0
    control: ControlStatusResponse
    location: dict = Field(default_factory=dict)


ControlViewResponse.model_rebuild()
