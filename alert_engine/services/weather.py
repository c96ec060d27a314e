"""
Radar intensity sampling from MSC GeoMet (Environment Canada) WMS.

A point sample is a WMS GetFeatureInfo request centred on the aircraft. The
service does not document units for the radar layers, so the value is used
only as "higher = more intense".
"""
import logging
import math
from typing import Any, Optional
from urllib.parse import urlparse

from prometheus_client import Counter

from alert_engine.core.cache import cached
from alert_engine.core.config import Settings, get_settings
from alert_engine.core.http import request_json, set_min_interval

logger = logging.getLogger(__name__)

WEB_MERCATOR_R = 6378137.0
BBOX_HALF_SIZE_M = 1500.0
PIXELS = 101

PREFERRED_KEYS = ("GRAY_INDEX", "value", "band_1", "Band1", "val")

# Rounded positions share cache entries (~100 m at 3 decimals)
POSITION_DECIMALS = 3

WEATHER_CACHE_HITS = Counter(
    "skyspy_alert_weather_cache_hits_total",
    "Total radar sample cache hits",
)
WEATHER_CACHE_MISSES = Counter(
    "skyspy_alert_weather_cache_misses_total",
    "Total radar sample cache misses",
)


def mercator_project(lat: float, lon: float) -> tuple[float, float]:
    """Project WGS84 degrees to EPSG:3857 metres."""
    x = math.radians(lon) * WEB_MERCATOR_R
    y = math.log(math.tan(math.pi / 4 + math.radians(lat) / 2)) * WEB_MERCATOR_R
    return x, y


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def extract_intensity(payload: Any) -> Optional[float]:
    """First numeric property of the first feature, preferring known band names."""
    if not isinstance(payload, dict):
        return None
    features = payload.get("features") or []
    if not features or not isinstance(features[0], dict):
        return None
    props = features[0].get("properties")
    if not isinstance(props, dict):
        return None

    for key in PREFERRED_KEYS:
        number = _as_number(props.get(key))
        if number is not None:
            return number

    for value in props.values():
        number = _as_number(value)
        if number is not None:
            return number

    return None


def build_feature_info_params(lat: float, lon: float, time_bucket: str, layer: str) -> dict:
    x, y = mercator_project(lat, lon)
    d = BBOX_HALF_SIZE_M
    return {
        "SERVICE": "WMS",
        "VERSION": "1.3.0",
        "REQUEST": "GetFeatureInfo",
        "LAYERS": layer,
        "QUERY_LAYERS": layer,
        "CRS": "EPSG:3857",
        "BBOX": f"{x - d},{y - d},{x + d},{y + d}",
        "WIDTH": str(PIXELS),
        "HEIGHT": str(PIXELS),
        "I": str(PIXELS // 2),
        "J": str(PIXELS // 2),
        "INFO_FORMAT": "application/json",
        "FEATURE_COUNT": "1",
        "TIME": time_bucket,
    }


class RadarUnavailable(Exception):
    """Raised when the radar service gave no answer (as opposed to an empty one)."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} ({self.url})"
        return self.message


async def fetch_radar_intensity(
    url: str, layer: str, lat: float, lon: float, time_bucket: str, timeout: float
) -> Optional[float]:
    """
    Query one radar sample. None when the service answered without a value.

    Raises RadarUnavailable when the request itself failed, so the failure is
    not cached and the next tick asks again.
    """
    params = build_feature_info_params(lat, lon, time_bucket, layer)
    payload = await request_json("GET", url, params=params, timeout=timeout)
    if payload is None:
        raise RadarUnavailable("Radar service unavailable", url)
    return extract_intensity(payload)


class GeoMetRadarSampler:
    """
    Point intensity sampler backed by GeoMet, usable as the engine's weather sampler.

    Answers are cached for the sampler's ``weather_cache_ttl``; failed
    requests raise RadarUnavailable and are retried on the next call.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.url = settings.geomet_url
        self.layer = settings.geomet_layer
        self.timeout = settings.weather_sample_timeout_s
        self._fetch = cached(
            ttl_seconds=settings.weather_cache_ttl,
            on_hit=WEATHER_CACHE_HITS.inc,
            on_miss=WEATHER_CACHE_MISSES.inc,
        )(fetch_radar_intensity)

        domain = urlparse(self.url).hostname
        if domain:
            set_min_interval(domain, settings.geomet_min_interval_s)

    async def __call__(self, lat: float, lon: float, time_bucket: str) -> Optional[float]:
        return await self._fetch(
            self.url,
            self.layer,
            round(lat, POSITION_DECIMALS),
            round(lon, POSITION_DECIMALS),
            time_bucket,
            self.timeout,
        )
