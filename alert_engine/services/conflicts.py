"""
Pairwise separation conflict detection over projected tracks.

Each pair of tracks is compared sample by sample (same index = same projected
time). The closest point of approach is the sample with the smallest
horizontal separation; vertical separation is only read at that sample, not
minimised jointly. A pair is a conflict only when some sample breaches both
the horizontal and the vertical threshold at once.
"""
import logging
import math
from typing import Iterable, Optional

from alert_engine.core.geo import distance_nm, midpoint
from alert_engine.schemas import Conflict, ProjectedTrack

logger = logging.getLogger(__name__)

DEFAULT_STEP_S = 60.0


def infer_step_seconds(track: ProjectedTrack, default: float = DEFAULT_STEP_S) -> float:
    """Sample spacing from the first two points' offsets, or ``default``."""
    if len(track.points) < 2:
        return default
    p0, p1 = track.points[0], track.points[1]
    dt = (p1.t_s or 0.0) - (p0.t_s or 0.0)
    if math.isfinite(dt) and dt > 0:
        return dt
    return default


def _compare_pair(
    a: ProjectedTrack,
    b: ProjectedTrack,
    horizontal_nm: float,
    vertical_ft: float,
    default_step_s: float,
) -> Optional[Conflict]:
    n = min(len(a.points), len(b.points))
    if n < 2:
        return None

    step = min(infer_step_seconds(a, default_step_s), infer_step_seconds(b, default_step_s))

    min_h = math.inf
    min_v = math.inf
    min_idx = 0
    first_breach_idx = None

    for k in range(n):
        pa, pb = a.points[k], b.points[k]
        h = distance_nm(pa.lat, pa.lon, pb.lat, pb.lon)
        v = abs(pa.alt_ft - pb.alt_ft)

        if h < min_h:
            min_h, min_v, min_idx = h, v, k

        if first_breach_idx is None and h < horizontal_nm and v < vertical_ft:
            first_breach_idx = k

    if first_breach_idx is None:
        return None

    pa, pb = a.points[min_idx], b.points[min_idx]
    cpa_lat, cpa_lon = midpoint(pa.lat, pa.lon, pb.lat, pb.lon)

    return Conflict(
        a_id=a.id,
        b_id=b.id,
        cpa_lat=cpa_lat,
        cpa_lon=cpa_lon,
        first_breach_s=first_breach_idx * step,
        min_h_nm=min_h,
        min_v_ft=min_v,
    )


def detect_conflicts(
    tracks: Iterable[ProjectedTrack],
    horizontal_nm: float = 5.0,
    vertical_ft: float = 1000.0,
    default_step_s: float = DEFAULT_STEP_S,
) -> list[Conflict]:
    """
    Find every pair of tracks predicted to lose separation.

    Tracks sharing an id collapse to the last one seen, so each unordered pair
    is evaluated once and yields at most one conflict, with ``a_id < b_id``.
    Results are ordered most urgent first (ascending ``first_breach_s``).
    """
    by_id = {track.id: track for track in tracks}
    ids = sorted(by_id)

    conflicts = []
    for i, id_a in enumerate(ids):
        for id_b in ids[i + 1:]:
            conflict = _compare_pair(
                by_id[id_a], by_id[id_b], horizontal_nm, vertical_ft, default_step_s
            )
            if conflict is not None:
                conflicts.append(conflict)

    conflicts.sort(key=lambda c: (c.first_breach_s, c.key))
    if conflicts:
        logger.debug(f"Detected {len(conflicts)} separation conflicts among {len(ids)} tracks")
    return conflicts
