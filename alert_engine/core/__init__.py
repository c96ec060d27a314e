"""Core package containing configuration, geodesy, caching and HTTP helpers."""
from alert_engine.core.config import get_settings, Settings
from alert_engine.core.cache import cached, clear_cache
from alert_engine.core.geo import (
    distance_nm,
    bearing_deg,
    wrap_deg,
    circular_spread_deg,
    clamp01,
    midpoint,
    time_bucket,
)
from alert_engine.core.http import request_json

__all__ = [
    "get_settings",
    "Settings",
    "cached",
    "clear_cache",
    "distance_nm",
    "bearing_deg",
    "wrap_deg",
    "circular_spread_deg",
    "clamp01",
    "midpoint",
    "time_bucket",
    "request_json",
]
