"""
SkySpy Alert Engine

Derives ranked safety alerts (separation risk, vertical rate, wake
proximity, congestion, weather) from per-tick aircraft snapshots and
externally projected trajectories.
"""
from alert_engine.engine import AlertEngine
from alert_engine.schemas import (
    AircraftState,
    Alert,
    AlertType,
    Conflict,
    EngineSnapshot,
    ProjectedPoint,
    ProjectedTrack,
    Severity,
    Trail,
    TrailPoint,
)

__all__ = [
    "AlertEngine",
    "AircraftState",
    "Alert",
    "AlertType",
    "Conflict",
    "EngineSnapshot",
    "ProjectedPoint",
    "ProjectedTrack",
    "Severity",
    "Trail",
    "TrailPoint",
]

__version__ = "1.0.0"
