"""
Alert synthesis: turns conflicts, aircraft states and radar samples into alerts.

Five independent families are produced each tick (separation, weather,
vertical rate, wake proximity and congestion). Families do not suppress each
other; ranking happens later in the alert stream by severity alone.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from prometheus_client import Counter

from alert_engine.core.config import Settings, get_settings
from alert_engine.core.geo import distance_nm, midpoint, wrap_deg
from alert_engine.services.ingest import safe_float
from alert_engine.schemas import (
    AircraftState,
    Alert,
    CongestionAlert,
    Conflict,
    SeparationAlert,
    Severity,
    VerticalAlert,
    WakeAlert,
    WeatherAlert,
    pair_key,
)

logger = logging.getLogger(__name__)

# (lat, lon, time bucket) -> intensity, None when there is no signal
IntensitySampler = Callable[[float, float, str], Awaitable[Optional[float]]]

WEATHER_SAMPLES = Counter(
    "skyspy_alert_weather_samples_total",
    "Radar samples requested while building weather alerts",
    ["status"]  # signal, clear, empty, invalid, timeout, error
)


def separation_severity(first_breach_s: float, settings: Settings) -> Severity:
    if first_breach_s < settings.separation_warning_s:
        return Severity.WARNING
    if first_breach_s < settings.separation_caution_s:
        return Severity.CAUTION
    return Severity.INFO


def vertical_severity(abs_vr: float, settings: Settings) -> Optional[Severity]:
    if abs_vr < settings.vertical_rate_caution_fpm:
        return None
    if abs_vr >= settings.vertical_rate_warning_fpm:
        return Severity.WARNING
    return Severity.CAUTION


def weather_severity(intensity: float, settings: Settings) -> Severity:
    if intensity >= settings.weather_warning_intensity:
        return Severity.WARNING
    if intensity >= settings.weather_caution_intensity:
        return Severity.CAUTION
    return Severity.INFO


class AlertSynthesizer:
    """Builds every alert family for one tick."""

    def __init__(self, settings: Optional[Settings] = None, sampler: Optional[IntensitySampler] = None):
        self.settings = settings or get_settings()
        self.sampler = sampler

    def id_bucket(self, time_s: int) -> int:
        """Tick time floored to the alert id bucket, so ids repeat within a bucket."""
        size = max(1, self.settings.alert_id_bucket_s)
        return time_s - time_s % size

    # =========================================================================
    # Separation
    # =========================================================================

    def separation_alerts(self, conflicts: Sequence[Conflict], time_s: int) -> list[SeparationAlert]:
        bucket = self.id_bucket(time_s)
        alerts = []
        for c in conflicts:
            alerts.append(SeparationAlert(
                id=f"sep-{c.key}-{bucket}",
                severity=separation_severity(c.first_breach_s, self.settings),
                title="Separation risk",
                details=(
                    f"{c.a_id} × {c.b_id} | H {c.min_h_nm:.2f} NM | V {c.min_v_ft:.0f} ft"
                    f" | breach {c.first_breach_s / 60:.1f} min"
                ),
                involved_ids=[c.a_id, c.b_id],
                lat=c.cpa_lat,
                lon=c.cpa_lon,
                time_s=time_s,
                conflict=c,
            ))
        return alerts

    # =========================================================================
    # Local heuristics
    # =========================================================================

    def vertical_alerts(self, aircraft: Sequence[AircraftState], time_s: int) -> list[VerticalAlert]:
        bucket = self.id_bucket(time_s)
        alerts = []
        for ac in aircraft:
            if ac.vr_fpm is None:
                continue
            severity = vertical_severity(abs(ac.vr_fpm), self.settings)
            if severity is None:
                continue
            alerts.append(VerticalAlert(
                id=f"vertical-{ac.id}-{bucket}",
                severity=severity,
                title="High vertical rate",
                details=f"{ac.label} {ac.vr_fpm:+.0f} fpm",
                involved_ids=[ac.id],
                lat=ac.lat,
                lon=ac.lon,
                time_s=time_s,
                vertical_rate_fpm=ac.vr_fpm,
            ))
        return alerts

    def wake_alerts(self, aircraft: Sequence[AircraftState], time_s: int) -> list[WakeAlert]:
        """Pairs close enough, level enough and aligned enough to share a wake."""
        s = self.settings
        bucket = self.id_bucket(time_s)
        alerts = []
        seen: set[str] = set()

        for i, a in enumerate(aircraft):
            for b in aircraft[i + 1:]:
                if a.id == b.id:
                    continue
                key = pair_key(a.id, b.id)
                if key in seen:
                    continue

                d = distance_nm(a.lat, a.lon, b.lat, b.lon)
                dv = abs(a.alt_ft - b.alt_ft)
                if d > s.wake_distance_nm or dv > s.wake_vertical_ft:
                    continue

                dh = abs(wrap_deg(a.track_deg - b.track_deg))
                if dh > s.wake_heading_deg:
                    continue

                seen.add(key)
                if d < s.wake_warning_distance_nm and dv < s.wake_warning_vertical_ft:
                    severity = Severity.WARNING
                else:
                    severity = Severity.CAUTION

                lat, lon = midpoint(a.lat, a.lon, b.lat, b.lon)
                alerts.append(WakeAlert(
                    id=f"wake-{key}-{bucket}",
                    severity=severity,
                    title="Potential wake proximity",
                    details=f"{a.label} ↔ {b.label} ({d:.2f} NM, {dv:.0f} ft)",
                    involved_ids=[a.id, b.id],
                    lat=lat,
                    lon=lon,
                    time_s=time_s,
                    distance_nm=d,
                    vertical_ft=dv,
                    heading_diff_deg=dh,
                ))
        return alerts

    def congestion_alerts(self, aircraft: Sequence[AircraftState], time_s: int) -> list[CongestionAlert]:
        s = self.settings
        within = [
            ac for ac in aircraft
            if distance_nm(s.reference_lat, s.reference_lon, ac.lat, ac.lon) <= s.congestion_radius_nm
        ]
        count = len(within)
        if count < s.congestion_caution_count:
            return []

        severity = Severity.WARNING if count >= s.congestion_warning_count else Severity.CAUTION
        return [CongestionAlert(
            id=f"congestion-{self.id_bucket(time_s)}",
            severity=severity,
            title=f"Congestion near {s.reference_name}",
            details=f"{count} aircraft within {s.congestion_radius_nm:g} NM",
            involved_ids=[ac.id for ac in within],
            lat=s.reference_lat,
            lon=s.reference_lon,
            time_s=time_s,
            count=count,
            radius_nm=s.congestion_radius_nm,
        )]

    # =========================================================================
    # Weather (external sampler)
    # =========================================================================

    def weather_candidates(self, aircraft: Sequence[AircraftState]) -> list[AircraftState]:
        """Nearest aircraft to the reference point, within range, capped."""
        s = self.settings
        ranged = []
        for ac in aircraft:
            d = distance_nm(s.reference_lat, s.reference_lon, ac.lat, ac.lon)
            if d <= s.weather_radius_nm:
                ranged.append((d, ac))
        ranged.sort(key=lambda item: item[0])
        return [ac for _, ac in ranged[:max(0, s.weather_max_samples)]]

    async def sample_intensity(self, ac: AircraftState, bucket: str) -> Optional[float]:
        """
        One bounded sampler call. Every failure mode comes back as None
        ("no signal") so a single bad sample never aborts the batch.
        """
        if self.sampler is None:
            return None
        try:
            value = await asyncio.wait_for(
                self.sampler(ac.lat, ac.lon, bucket),
                timeout=self.settings.weather_sample_timeout_s,
            )
        except asyncio.TimeoutError:
            WEATHER_SAMPLES.labels(status="timeout").inc()
            logger.debug(f"Radar sample timed out for {ac.id}")
            return None
        except Exception as e:
            WEATHER_SAMPLES.labels(status="error").inc()
            logger.debug(f"Radar sample failed for {ac.id}: {e}")
            return None

        if value is None:
            WEATHER_SAMPLES.labels(status="empty").inc()
            return None
        intensity = safe_float(value)
        if intensity is None:
            WEATHER_SAMPLES.labels(status="invalid").inc()
            logger.debug(f"Radar sample for {ac.id} is not a number: {value!r}")
            return None
        if intensity <= 0:
            WEATHER_SAMPLES.labels(status="clear").inc()
            return None
        WEATHER_SAMPLES.labels(status="signal").inc()
        return intensity

    async def weather_alerts(
        self, aircraft: Sequence[AircraftState], time_s: int, bucket: str
    ) -> list[WeatherAlert]:
        if self.sampler is None or not self.settings.weather_enabled:
            return []

        id_bucket = self.id_bucket(time_s)
        alerts = []
        # Sequential on purpose: bounded load on the radar service
        for ac in self.weather_candidates(aircraft):
            value = await self.sample_intensity(ac, bucket)
            if value is None:
                continue
            alerts.append(WeatherAlert(
                id=f"wx-{ac.id}-{id_bucket}",
                severity=weather_severity(value, self.settings),
                title="Weather near aircraft",
                details=f"{ac.label} radar intensity ~ {value:g}",
                involved_ids=[ac.id],
                lat=ac.lat,
                lon=ac.lon,
                time_s=time_s,
                intensity=value,
                time_bucket=bucket,
            ))
        return alerts

    # =========================================================================
    # All families
    # =========================================================================

    def local_alerts(self, aircraft: Sequence[AircraftState], time_s: int) -> list[Alert]:
        """Vertical, congestion and wake alerts (no external input)."""
        return [
            *self.vertical_alerts(aircraft, time_s),
            *self.congestion_alerts(aircraft, time_s),
            *self.wake_alerts(aircraft, time_s),
        ]

    async def synthesize(
        self,
        aircraft: Sequence[AircraftState],
        conflicts: Sequence[Conflict],
        time_s: int,
        weather_bucket: str,
    ) -> list[Alert]:
        aircraft = list(aircraft)
        separation = self.separation_alerts(conflicts, time_s)
        local = self.local_alerts(aircraft, time_s)
        weather = await self.weather_alerts(aircraft, time_s, weather_bucket)
        logger.debug(
            f"Synthesized {len(separation)} separation, {len(weather)} weather, "
            f"{len(local)} local alerts"
        )
        return [*separation, *weather, *local]
