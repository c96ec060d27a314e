"""
Tick orchestration for the conflict & alert engine.

One tick: update trail history -> score stability -> project tracks ->
detect conflicts -> synthesize alerts (sampling weather) -> publish.

Outputs of a tick are committed together at the end, so readers never see a
mix of two ticks. A tick that fails leaves the previous outputs in place and
only sets ``status``. A tick requested while another is still in flight
(typically waiting on weather samples) is dropped, not queued.
"""
import logging
import time
from typing import Optional, Sequence, Union

from prometheus_client import Counter, Histogram

from alert_engine.core.config import Settings, get_settings
from alert_engine.core.geo import time_bucket
from alert_engine.schemas import (
    AircraftState,
    Alert,
    AlertType,
    Conflict,
    EngineSnapshot,
    ProjectedTrack,
    Severity,
    Trail,
)
from alert_engine.services.alerts import AlertSynthesizer, IntensitySampler
from alert_engine.services.conflicts import detect_conflicts
from alert_engine.services.history import TrailStore
from alert_engine.services.projector import TrajectoryProjector
from alert_engine.services.stability import score_trails
from alert_engine.services.stream import AlertStream

logger = logging.getLogger(__name__)

TICKS = Counter(
    "skyspy_alert_ticks_total",
    "Engine ticks by outcome",
    ["outcome"]  # completed, degraded, failed, dropped
)
TICK_DURATION = Histogram(
    "skyspy_alert_tick_duration_seconds",
    "Wall time of completed ticks",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30]
)
PROJECTOR_FAILURES = Counter(
    "skyspy_alert_projector_failures_total",
    "Ticks that ran without projected tracks because the projector failed"
)


class AlertEngine:
    """
    Owns trail history and the alert stream, and runs ticks over snapshots.

    Collaborators are injected: ``projector`` maps the snapshot to projected
    tracks and ``sampler`` returns radar intensity for a point. Either may be
    None, in which case separation detection or weather alerts are skipped.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        projector: Optional[TrajectoryProjector] = None,
        sampler: Optional[IntensitySampler] = None,
        trails: Optional[TrailStore] = None,
        stream: Optional[AlertStream] = None,
    ):
        self.settings = settings or get_settings()
        self.projector = projector
        self.synthesizer = AlertSynthesizer(self.settings, sampler)
        self.trail_store = trails if trails is not None else TrailStore(settings=self.settings)
        self.stream = stream if stream is not None else AlertStream()

        self._in_flight = False
        self.status: Optional[str] = None

        self._time_s: Optional[int] = None
        self._weather_bucket: Optional[str] = None
        self._aircraft: list[AircraftState] = []
        self._tracks: list[ProjectedTrack] = []
        self._trails: list[Trail] = []
        self._stability: dict[str, float] = {}
        self._conflicts: list[Conflict] = []

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AlertEngine":
        """Engine wired to the HTTP projector and the GeoMet radar sampler."""
        from alert_engine.services.projector import HttpProjector
        from alert_engine.services.weather import GeoMetRadarSampler

        settings = settings or get_settings()
        sampler = GeoMetRadarSampler(settings) if settings.weather_enabled else None
        return cls(settings=settings, projector=HttpProjector(settings), sampler=sampler)

    @property
    def busy(self) -> bool:
        return self._in_flight

    # =========================================================================
    # Tick
    # =========================================================================

    async def tick(self, aircraft: Sequence[AircraftState], now: Optional[float] = None) -> bool:
        """
        Recompute everything for one snapshot.

        Returns True when the tick committed, False when it was dropped
        (another tick in flight) or failed. Never raises.
        """
        if self._in_flight:
            TICKS.labels(outcome="dropped").inc()
            logger.debug("Tick requested while previous tick in flight, dropping")
            return False

        self._in_flight = True
        started = time.perf_counter()
        try:
            now = time.time() if now is None else now
            aircraft = list(aircraft)
            time_s = int(now)
            weather_bucket = time_bucket(now, self.settings.weather_bucket_minutes)

            self.trail_store.update(aircraft, now)
            trails = self.trail_store.trails_for(aircraft)
            stability = score_trails(trails, self.settings)

            tracks, projection_error = await self._project(aircraft)

            conflicts = detect_conflicts(
                tracks,
                horizontal_nm=self.settings.separation_horizontal_nm,
                vertical_ft=self.settings.separation_vertical_ft,
                default_step_s=self.settings.projection_default_step_s,
            )
            alerts = await self.synthesizer.synthesize(aircraft, conflicts, time_s, weather_bucket)

        except Exception as e:
            TICKS.labels(outcome="failed").inc()
            logger.exception(f"Tick failed, keeping previous output: {e}")
            self.status = f"Tick failed: {e}"
            return False

        finally:
            self._in_flight = False

        self._time_s = time_s
        self._weather_bucket = weather_bucket
        self._aircraft = aircraft
        self._tracks = tracks
        self._trails = trails
        self._stability = stability
        self._conflicts = conflicts
        self.stream.publish(alerts)
        self.status = projection_error

        TICKS.labels(outcome="degraded" if projection_error else "completed").inc()
        TICK_DURATION.observe(time.perf_counter() - started)
        logger.debug(
            f"Tick {time_s}: {len(aircraft)} aircraft, {len(tracks)} tracks, "
            f"{len(conflicts)} conflicts, {len(alerts)} alerts"
        )
        return True

    async def _project(self, aircraft: list[AircraftState]) -> tuple[list[ProjectedTrack], Optional[str]]:
        """Projected tracks for this tick, or no tracks (never stale ones) on failure."""
        if self.projector is None or not aircraft:
            return [], None
        try:
            return list(await self.projector(aircraft)), None
        except Exception as e:
            PROJECTOR_FAILURES.inc()
            logger.warning(f"Projection failed, separation detection skipped this tick: {e}")
            return [], f"Projection unavailable: {e}"

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def time_s(self) -> Optional[int]:
        return self._time_s

    @property
    def weather_bucket(self) -> Optional[str]:
        return self._weather_bucket

    @property
    def aircraft(self) -> list[AircraftState]:
        return list(self._aircraft)

    @property
    def tracks(self) -> list[ProjectedTrack]:
        return list(self._tracks)

    @property
    def trails(self) -> list[Trail]:
        return list(self._trails)

    @property
    def stability(self) -> dict[str, float]:
        return dict(self._stability)

    @property
    def conflicts(self) -> list[Conflict]:
        """All conflicts of the last tick, unfiltered."""
        return list(self._conflicts)

    @property
    def alerts(self) -> list[Alert]:
        """All alerts of the last tick, unfiltered."""
        return self.stream.alerts

    @property
    def visible_alerts(self) -> list[Alert]:
        return self.stream.visible_alerts

    @property
    def visible_conflicts(self) -> list[Conflict]:
        return self.stream.visible_conflicts

    @property
    def selected_conflict(self) -> Optional[Conflict]:
        return self.stream.selected_conflict

    @property
    def selected_alert_id(self) -> Optional[str]:
        return self.stream.selected_alert_id

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            time_s=self._time_s,
            weather_bucket=self._weather_bucket,
            aircraft=self._aircraft,
            tracks=self._tracks,
            trails=self._trails,
            stability=self._stability,
            alerts=self.stream.alerts,
            conflicts=self._conflicts,
            visible_alerts=self.stream.visible_alerts,
            visible_conflicts=self.stream.visible_conflicts,
            selected_conflict_key=self.stream.selected_conflict_key,
            selected_alert_id=self.stream.selected_alert_id,
            status=self.status,
        )

    # =========================================================================
    # Mutators
    # =========================================================================

    def select_conflict(self, conflict: Union[Conflict, str, None]) -> bool:
        return self.stream.select_conflict(conflict)

    def select_alert(self, alert_id: Optional[str]) -> bool:
        return self.stream.select_alert(alert_id)

    def set_kind_enabled(self, kind: Union[AlertType, str], enabled: bool):
        self.stream.set_kind_enabled(kind, enabled)

    def set_min_severity(self, severity: Union[Severity, str]):
        self.stream.set_min_severity(severity)

    def reset(self):
        """Forget history, outputs and selection."""
        self.trail_store.reset()
        self.stream.clear()
        self.stream.selected_conflict_key = None
        self.stream.selected_alert_id = None
        self.status = None
        self._time_s = None
        self._weather_bucket = None
        self._aircraft = []
        self._tracks = []
        self._trails = []
        self._stability = {}
        self._conflicts = []
