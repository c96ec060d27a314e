"""
Pydantic records exchanged with the engine's collaborators.

Every record is rebuilt from scratch on each tick; only trail buffers and
selection identifiers survive between ticks.
"""
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Alert severity, totally ordered info < caution < warning."""
    INFO = "info"
    CAUTION = "caution"
    WARNING = "warning"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK = {Severity.INFO: 0, Severity.CAUTION: 1, Severity.WARNING: 2}


class AlertType(str, Enum):
    SEPARATION = "separation"
    WEATHER = "weather"
    VERTICAL = "vertical"
    WAKE = "wake"
    CONGESTION = "congestion"


# ============================================================================
# Aircraft / trajectory records
# ============================================================================

class AircraftState(BaseModel):
    """One aircraft as seen in the current snapshot."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "c07b1f",
                "callsign": "ACA123",
                "lat": 45.47,
                "lon": -73.74,
                "alt_ft": 12000,
                "gs_kt": 310,
                "track_deg": 245.0,
                "vr_fpm": -1200,
            }
        }
    )

    id: str = Field(..., description="Stable aircraft identifier (usually ICAO24)")
    callsign: Optional[str] = Field(None, description="Callsign/flight number")
    lat: float = Field(..., description="Latitude in decimal degrees")
    lon: float = Field(..., description="Longitude in decimal degrees")
    alt_ft: float = Field(..., description="Altitude in feet")
    gs_kt: float = Field(0.0, description="Ground speed in knots")
    track_deg: float = Field(0.0, description="Ground track in degrees [0, 360)")
    vr_fpm: Optional[float] = Field(None, description="Vertical rate in feet/minute")

    @property
    def label(self) -> str:
        return self.callsign or self.id


class ProjectedPoint(BaseModel):
    lat: float
    lon: float
    alt_ft: float
    t_s: Optional[float] = Field(None, description="Offset from projection start, seconds")


class ProjectedTrack(BaseModel):
    """Time-ascending projected positions for one aircraft."""
    id: str
    points: list[ProjectedPoint] = Field(default_factory=list)


class TrailPoint(BaseModel):
    ts: float = Field(..., description="Unix timestamp, seconds")
    lat: float
    lon: float
    alt_ft: Optional[float] = None
    track_deg: Optional[float] = None


class Trail(BaseModel):
    """Recent observed positions of one aircraft within the trailing window."""
    id: str
    callsign: Optional[str] = None
    points: list[TrailPoint] = Field(default_factory=list)


# ============================================================================
# Conflicts
# ============================================================================

def pair_key(a_id: str, b_id: str) -> str:
    """Canonical key for an unordered aircraft pair."""
    return f"{a_id}|{b_id}" if a_id < b_id else f"{b_id}|{a_id}"


class Conflict(BaseModel):
    """Predicted loss of separation between two projected tracks."""
    a_id: str
    b_id: str
    cpa_lat: float = Field(..., description="Midpoint of the pair at closest approach")
    cpa_lon: float
    first_breach_s: float = Field(..., description="Seconds until first simultaneous breach")
    min_h_nm: float = Field(..., description="Minimum horizontal separation, NM")
    min_v_ft: float = Field(..., description="Vertical separation at the CPA sample, ft")

    @property
    def key(self) -> str:
        return pair_key(self.a_id, self.b_id)


# ============================================================================
# Alerts (tagged union over the five kinds)
# ============================================================================

class AlertBase(BaseModel):
    """Envelope shared by every alert kind."""
    id: str
    severity: Severity
    title: str
    details: str
    involved_ids: list[str] = Field(default_factory=list)
    lat: float
    lon: float
    time_s: int = Field(..., description="Tick time, unix seconds")


class SeparationAlert(AlertBase):
    type: Literal["separation"] = "separation"
    conflict: Conflict


class WeatherAlert(AlertBase):
    type: Literal["weather"] = "weather"
    intensity: float
    time_bucket: str


class VerticalAlert(AlertBase):
    type: Literal["vertical"] = "vertical"
    vertical_rate_fpm: float


class WakeAlert(AlertBase):
    type: Literal["wake"] = "wake"
    distance_nm: float
    vertical_ft: float
    heading_diff_deg: float


class CongestionAlert(AlertBase):
    type: Literal["congestion"] = "congestion"
    count: int
    radius_nm: float


Alert = Annotated[
    Union[SeparationAlert, WeatherAlert, VerticalAlert, WakeAlert, CongestionAlert],
    Field(discriminator="type"),
]


class EngineSnapshot(BaseModel):
    """Everything the engine exposes after a committed tick."""
    time_s: Optional[int] = None
    weather_bucket: Optional[str] = None
    aircraft: list[AircraftState] = Field(default_factory=list)
    tracks: list[ProjectedTrack] = Field(default_factory=list)
    trails: list[Trail] = Field(default_factory=list)
    stability: dict[str, float] = Field(default_factory=dict)
    alerts: list[Alert] = Field(default_factory=list)
    conflicts: list[Conflict] = Field(default_factory=list)
    visible_alerts: list[Alert] = Field(default_factory=list)
    visible_conflicts: list[Conflict] = Field(default_factory=list)
    selected_conflict_key: Optional[str] = None
    selected_alert_id: Optional[str] = None
    status: Optional[str] = None
