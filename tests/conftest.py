"""
Shared pytest fixtures for alert engine tests.

Provides settings, aircraft/track builders and isolation of module-level
caches and rate limiters.
"""
import math
import os

import pytest

# Set test environment variables before importing the package
os.environ.setdefault('REFERENCE_LAT', '45.5019')
os.environ.setdefault('REFERENCE_LON', '-73.5674')
os.environ.setdefault('WEATHER_ENABLED', 'true')
os.environ.setdefault('WEATHER_SAMPLE_TIMEOUT_S', '5')
os.environ.setdefault('PROJECTOR_URL', 'http://projector.test')
os.environ.setdefault('GEOMET_URL', 'https://geomet.test/geomet/')
os.environ.setdefault('GEOMET_MIN_INTERVAL_S', '0')

from alert_engine.core.cache import clear_cache
from alert_engine.core.config import Settings
from alert_engine.core.http import reset_rate_limits
from alert_engine.schemas import AircraftState, ProjectedPoint, ProjectedTrack

REF_LAT = 45.5019
REF_LON = -73.5674


def _offset_nm(lat: float, lon: float, north_nm: float = 0.0, east_nm: float = 0.0) -> tuple[float, float]:
    """Small-distance offset of a position, in nautical miles."""
    new_lat = lat + north_nm / 60.0
    new_lon = lon + east_nm / (60.0 * math.cos(math.radians(lat)))
    return new_lat, new_lon


def _make_aircraft(aircraft_id: str, lat: float = REF_LAT, lon: float = REF_LON, alt_ft: float = 10000,
                  track_deg: float = 90.0, vr_fpm=None, callsign=None, gs_kt: float = 250.0) -> AircraftState:
    return AircraftState(
        id=aircraft_id,
        callsign=callsign,
        lat=lat,
        lon=lon,
        alt_ft=alt_ft,
        gs_kt=gs_kt,
        track_deg=track_deg,
        vr_fpm=vr_fpm,
    )


def _make_track(track_id: str, positions, step_s: float = 60.0, with_offsets: bool = True) -> ProjectedTrack:
    """positions: iterable of (lat, lon, alt_ft)."""
    points = []
    for k, (lat, lon, alt) in enumerate(positions):
        points.append(ProjectedPoint(
            lat=lat, lon=lon, alt_ft=alt, t_s=k * step_s if with_offsets else None
        ))
    return ProjectedTrack(id=track_id, points=points)


@pytest.fixture(autouse=True)
def isolate_module_state():
    """Clear response caches and per-domain throttling between tests."""
    clear_cache()
    reset_rate_limits()
    yield
    clear_cache()
    reset_rate_limits()


@pytest.fixture
def settings():
    """Explicit settings with the documented defaults."""
    return Settings(
        reference_lat=REF_LAT,
        reference_lon=REF_LON,
        weather_enabled=True,
        weather_sample_timeout_s=1.0,
        alert_id_bucket_s=60,
    )


@pytest.fixture
def converging_tracks():
    """
    A holds position; B closes from the east with 500 ft separation.

    Distances by sample: 12, 10, 8, 6, 3, 1, 4, 9 NM. First breach is sample 4,
    closest approach is sample 5.
    """
    lat, lon = 10.0, 20.0
    distances = [12, 10, 8, 6, 3, 1, 4, 9]
    a = _make_track("A", [(lat, lon, 20000)] * len(distances))
    b = _make_track("B", [(*_offset_nm(lat, lon, east_nm=d), 20500) for d in distances])
    return a, b


@pytest.fixture
def offset_nm():
    """Position offset helper: offset_nm(lat, lon, north_nm=0, east_nm=0)."""
    return _offset_nm


@pytest.fixture
def make_aircraft():
    """AircraftState factory positioned at the reference point by default."""
    return _make_aircraft


@pytest.fixture
def make_track():
    """ProjectedTrack factory from (lat, lon, alt_ft) tuples."""
    return _make_track
