"""Services package."""
from alert_engine.services.history import TrailStore
from alert_engine.services.stability import compute_instability, score_trails
from alert_engine.services.conflicts import detect_conflicts, infer_step_seconds
from alert_engine.services.alerts import AlertSynthesizer, IntensitySampler
from alert_engine.services.stream import AlertStream, filter_alerts, rank_alerts, unique_conflicts
from alert_engine.services.projector import HttpProjector, ProjectionError, TrajectoryProjector
from alert_engine.services.weather import GeoMetRadarSampler, RadarUnavailable
from alert_engine.services.ingest import parse_aircraft, parse_snapshot

__all__ = [
    # Trail history / stability
    "TrailStore",
    "compute_instability",
    "score_trails",
    # Conflicts
    "detect_conflicts",
    "infer_step_seconds",
    # Alerts
    "AlertSynthesizer",
    "IntensitySampler",
    "AlertStream",
    "filter_alerts",
    "rank_alerts",
    "unique_conflicts",
    # External collaborators
    "HttpProjector",
    "ProjectionError",
    "TrajectoryProjector",
    "GeoMetRadarSampler",
    "RadarUnavailable",
    # Ingestion
    "parse_aircraft",
    "parse_snapshot",
]
