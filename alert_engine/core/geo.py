"""
Geodesy helpers: great-circle distance, bearings and heading statistics.
"""
import math
from datetime import datetime, timezone
from typing import Iterable

EARTH_RADIUS_M = 6371000.0
METERS_PER_NM = 1852.0


def distance_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance in nautical miles using Haversine formula."""
    lat1_rad, lat2_rad = math.radians(lat1), math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2)
    # Rounding can push a fractionally above 1 for antipodal points
    a = min(1.0, max(0.0, a))

    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a)) / METERS_PER_NM


def bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial true bearing from point 1 to point 2, in [0, 360)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    delta_lon = math.radians(lon2 - lon1)

    y = math.sin(delta_lon) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(delta_lon)
    bearing = math.degrees(math.atan2(y, x)) % 360.0
    return 0.0 if bearing >= 360.0 else bearing


def wrap_deg(d: float) -> float:
    """Wrap an angle difference into (-180, 180]."""
    x = d % 360.0
    if x > 180.0:
        x -= 360.0
    return x


def circular_spread_deg(headings: Iterable[float]) -> float:
    """
    Heading dispersion from the mean resultant length.

    Returns (1 - R) * 180 where R is the length of the mean unit vector:
    0 for identical headings, 180 for fully cancelling ones.
    """
    headings = list(headings)
    if len(headings) < 2:
        return 0.0

    sx = sum(math.cos(math.radians(h)) for h in headings)
    sy = sum(math.sin(math.radians(h)) for h in headings)
    r = math.hypot(sx, sy) / len(headings)
    return max(0.0, (1.0 - min(1.0, r)) * 180.0)


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def midpoint(lat1: float, lon1: float, lat2: float, lon2: float) -> tuple[float, float]:
    """Arithmetic midpoint (not geodesic). Adequate for nearby aircraft."""
    return (lat1 + lat2) / 2.0, (lon1 + lon2) / 2.0


def time_bucket(ts: float, minutes: int = 5) -> str:
    """Floor a unix timestamp to a minute boundary, as an ISO-8601 UTC string."""
    step = max(1, int(minutes)) * 60
    floored = math.floor(ts / step) * step
    return datetime.fromtimestamp(floored, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
