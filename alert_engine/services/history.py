"""
Per-aircraft trail buffers over a trailing time window.
"""
import logging
from collections import deque
from typing import Iterable, Optional

from alert_engine.core.config import Settings, get_settings
from alert_engine.schemas import AircraftState, Trail, TrailPoint

logger = logging.getLogger(__name__)


class _TrailBuffer:
    __slots__ = ("callsign", "points")

    def __init__(self, callsign: Optional[str] = None):
        self.callsign = callsign
        self.points: deque[TrailPoint] = deque()


class TrailStore:
    """
    Owns the only state that persists across ticks: recent positions per aircraft.

    ``update`` appends one point per aircraft in the snapshot and evicts that
    aircraft's points older than the window. Aircraft missing from a snapshot
    keep their buffer as-is, so brief signal loss does not erase the history
    the stability score depends on. A buffer is dropped only once its newest
    point is older than ``retention_s``.
    """

    def __init__(self, window_s: Optional[float] = None, retention_s: Optional[float] = None,
                 settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.window_s = window_s if window_s is not None else settings.trail_window_s
        self.retention_s = max(
            self.window_s,
            retention_s if retention_s is not None else settings.trail_retention_s,
        )
        self._buffers: dict[str, _TrailBuffer] = {}

    def __len__(self) -> int:
        return len(self._buffers)

    def __contains__(self, aircraft_id: str) -> bool:
        return aircraft_id in self._buffers

    def update(self, aircraft: Iterable[AircraftState], now: float):
        """Append the snapshot's positions and evict points outside the window."""
        cutoff = now - self.window_s

        for ac in aircraft:
            buf = self._buffers.get(ac.id)
            if buf is None:
                buf = self._buffers[ac.id] = _TrailBuffer(ac.callsign)
            elif ac.callsign:
                buf.callsign = ac.callsign

            # Out-of-order snapshots would break the non-decreasing invariant
            if buf.points and now < buf.points[-1].ts:
                logger.debug(f"Ignoring out-of-order position for {ac.id} at {now}")
            else:
                buf.points.append(TrailPoint(
                    ts=now,
                    lat=ac.lat,
                    lon=ac.lon,
                    alt_ft=ac.alt_ft,
                    track_deg=ac.track_deg,
                ))

            while buf.points and buf.points[0].ts < cutoff:
                buf.points.popleft()

        self._drop_stale(now)

    def _drop_stale(self, now: float):
        stale_cutoff = now - self.retention_s
        stale = [
            aircraft_id for aircraft_id, buf in self._buffers.items()
            if not buf.points or buf.points[-1].ts < stale_cutoff
        ]
        for aircraft_id in stale:
            del self._buffers[aircraft_id]
        if stale:
            logger.debug(f"Dropped {len(stale)} stale trail buffers")

    def get(self, aircraft_id: str) -> Optional[Trail]:
        buf = self._buffers.get(aircraft_id)
        if buf is None:
            return None
        return Trail(id=aircraft_id, callsign=buf.callsign, points=list(buf.points))

    def trails_for(self, aircraft: Iterable[AircraftState]) -> list[Trail]:
        """Trails for the aircraft of the current snapshot, in snapshot order."""
        trails = []
        for ac in aircraft:
            trail = self.get(ac.id)
            if trail is None:
                trail = Trail(id=ac.id, callsign=ac.callsign, points=[])
            trails.append(trail)
        return trails

    def all_trails(self) -> list[Trail]:
        return [self.get(aircraft_id) for aircraft_id in self._buffers]

    def reset(self):
        """Forget every buffer."""
        self._buffers.clear()
