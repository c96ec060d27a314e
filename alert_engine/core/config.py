"""
Engine configuration using Pydantic settings.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Reference point (congestion / weather proximity filters)
    reference_lat: float = 45.5019
    reference_lon: float = -73.5674
    reference_name: str = "Montreal"

    # Separation
    separation_horizontal_nm: float = 5.0
    separation_vertical_ft: float = 1000.0
    projection_default_step_s: float = 60.0
    separation_warning_s: float = 180.0  # first breach sooner than this -> warning
    separation_caution_s: float = 420.0

    # Vertical rate
    vertical_rate_caution_fpm: float = 1500.0
    vertical_rate_warning_fpm: float = 2500.0

    # Wake proximity
    wake_distance_nm: float = 2.0
    wake_vertical_ft: float = 700.0
    wake_heading_deg: float = 25.0
    wake_warning_distance_nm: float = 1.0
    wake_warning_vertical_ft: float = 400.0

    # Congestion
    congestion_radius_nm: float = 20.0
    congestion_caution_count: int = 10
    congestion_warning_count: int = 15

    # Weather sampling
    weather_enabled: bool = True
    weather_radius_nm: float = 120.0
    weather_max_samples: int = 30
    weather_caution_intensity: float = 15.0
    weather_warning_intensity: float = 30.0
    weather_bucket_minutes: int = 5
    weather_sample_timeout_s: float = 5.0
    weather_cache_ttl: int = 300

    # MSC GeoMet radar
    geomet_url: str = "https://geo.weather.gc.ca/geomet/"
    geomet_layer: str = "RADAR_1KM_RRAI"
    geomet_min_interval_s: float = 0.2

    # Trajectory projector
    projector_url: str = "http://localhost:8000"
    projector_timeout_s: float = 10.0

    # Trails / stability
    trail_window_s: float = 300.0
    trail_retention_s: float = 1800.0
    stability_spread_scale_deg: float = 25.0
    stability_turn_rate_scale_dps: float = 1.5

    # Alerts
    alert_id_bucket_s: int = 60

    # Ingestion
    max_aircraft: Optional[int] = 60

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
