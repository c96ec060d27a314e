"""
Heading-stability scoring from recent position history.
"""
from typing import Iterable, Optional, Sequence

from alert_engine.core.config import Settings, get_settings
from alert_engine.core.geo import bearing_deg, circular_spread_deg, clamp01, wrap_deg
from alert_engine.schemas import Trail, TrailPoint

MIN_POINTS = 3


def compute_instability(
    points: Sequence[TrailPoint],
    spread_scale_deg: float = 25.0,
    turn_rate_scale_dps: float = 1.5,
) -> float:
    """
    Score how erratic an aircraft's recent ground track has been, in [0, 1].

    Two terms are computed from the consecutive bearings between trail points:
    - spread: circular dispersion of the bearings, saturating at ``spread_scale_deg``
    - turn rate: mean |bearing change| per second, saturating at ``turn_rate_scale_dps``

    Either term alone can drive the score to 1. Fewer than three points
    cannot define a change of heading, so they score 0.
    """
    if len(points) < MIN_POINTS:
        return 0.0

    headings = [
        bearing_deg(a.lat, a.lon, b.lat, b.lon)
        for a, b in zip(points, points[1:])
    ]

    turn_rates = []
    for i in range(1, len(headings)):
        dh = wrap_deg(headings[i] - headings[i - 1])
        dt = points[i + 1].ts - points[i].ts
        if dt > 0:
            turn_rates.append(abs(dh) / dt)

    spread = circular_spread_deg(headings)
    avg_turn = sum(turn_rates) / len(turn_rates) if turn_rates else 0.0

    spread_term = clamp01(spread / spread_scale_deg)
    turn_term = clamp01(avg_turn / turn_rate_scale_dps)

    return clamp01(max(spread_term, turn_term))


def score_trails(trails: Iterable[Trail], settings: Optional[Settings] = None) -> dict[str, float]:
    """Instability score for every trail, keyed by aircraft id."""
    settings = settings or get_settings()
    return {
        trail.id: compute_instability(
            trail.points,
            spread_scale_deg=settings.stability_spread_scale_deg,
            turn_rate_scale_dps=settings.stability_turn_rate_scale_dps,
        )
        for trail in trails
    }
