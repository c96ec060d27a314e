"""
Snapshot ingestion: raw aircraft dicts -> validated AircraftState records.

The detection core assumes well-formed input; this is where malformed
positions and altitudes are rejected. Both the engine's own field names and
readsb/ultrafeeder aircraft.json names are accepted.
"""
import logging
import math
from typing import Any, Iterable, Optional

from alert_engine.schemas import AircraftState

logger = logging.getLogger(__name__)


def is_valid_position(lat: Optional[float], lon: Optional[float]) -> bool:
    """Check if coordinates are valid (finite, in range and not null island)."""
    if lat is None or lon is None:
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    # Check for null island (0,0) - usually erroneous data
    if abs(lat) < 0.01 and abs(lon) < 0.01:
        return False
    if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
        return False
    return True


def safe_float(value: Any) -> Optional[float]:
    """Finite float or None; booleans are not numbers here."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def safe_altitude(alt_value: Any) -> Optional[float]:
    """Altitude in feet, handling 'ground' and numeric strings."""
    if isinstance(alt_value, str) and alt_value.strip().lower() == "ground":
        return 0.0
    return safe_float(alt_value)


def _first(raw: dict, *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def parse_aircraft(raw: dict) -> Optional[AircraftState]:
    """Build an AircraftState, or None when the entry is unusable."""
    aircraft_id = _first(raw, "id", "hex", "icao24")
    if aircraft_id is None:
        return None
    aircraft_id = str(aircraft_id).strip()
    if not aircraft_id:
        return None

    lat = safe_float(raw.get("lat"))
    lon = safe_float(raw.get("lon"))
    if not is_valid_position(lat, lon):
        return None

    alt = safe_altitude(_first(raw, "alt_ft", "alt_baro", "alt_geom"))
    if alt is None or alt < 0:
        return None

    callsign = _first(raw, "callsign", "flight")
    if callsign is not None:
        callsign = str(callsign).strip() or None

    track = safe_float(_first(raw, "track_deg", "track"))
    track = (track % 360.0) if track is not None else 0.0
    if track >= 360.0:
        track = 0.0

    return AircraftState(
        id=aircraft_id,
        callsign=callsign,
        lat=lat,
        lon=lon,
        alt_ft=alt,
        gs_kt=safe_float(_first(raw, "gs_kt", "gs")) or 0.0,
        track_deg=track,
        vr_fpm=safe_float(_first(raw, "vr_fpm", "baro_rate", "geom_rate")),
    )


def parse_snapshot(items: Iterable[dict], max_aircraft: Optional[int] = None) -> list[AircraftState]:
    """Validate a snapshot, keeping the last entry per id, capped at ``max_aircraft``."""
    by_id: dict[str, AircraftState] = {}
    rejected = 0
    for raw in items:
        ac = parse_aircraft(raw) if isinstance(raw, dict) else None
        if ac is None:
            rejected += 1
            continue
        by_id[ac.id] = ac

    if rejected:
        logger.debug(f"Rejected {rejected} malformed aircraft entries")

    aircraft = list(by_id.values())
    if max_aircraft is not None and max_aircraft >= 0:
        aircraft = aircraft[:max_aircraft]
    return aircraft
