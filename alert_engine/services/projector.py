"""
Trajectory projector client.

Projection itself happens in an external service; the engine only needs an
async callable mapping the snapshot to projected tracks. ``HttpProjector``
talks to the projection backend over HTTP.
"""
import logging
from typing import Awaitable, Callable, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from alert_engine.core.config import Settings, get_settings
from alert_engine.core.http import request_json
from alert_engine.schemas import AircraftState, ProjectedTrack

logger = logging.getLogger(__name__)

TrajectoryProjector = Callable[[Sequence[AircraftState]], Awaitable[list[ProjectedTrack]]]

_tracks_adapter = TypeAdapter(list[ProjectedTrack])


class ProjectionError(Exception):
    """Raised when the projection backend cannot provide tracks."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} ({self.url})"
        return self.message


class HttpProjector:
    """POSTs ``{"aircraft": [...]}`` to ``{projector_url}/project``."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.url = settings.projector_url.rstrip("/") + "/project"
        self.timeout = settings.projector_timeout_s

    async def __call__(self, aircraft: Sequence[AircraftState]) -> list[ProjectedTrack]:
        if not aircraft:
            return []

        body = {"aircraft": [ac.model_dump() for ac in aircraft]}
        payload = await request_json("POST", self.url, json=body, timeout=self.timeout)
        if payload is None:
            raise ProjectionError("Projection backend unavailable", self.url)

        try:
            tracks = _tracks_adapter.validate_python(payload)
        except ValidationError as e:
            raise ProjectionError(f"Malformed projection response: {e.error_count()} errors", self.url) from e

        logger.debug(f"Projected {len(tracks)} tracks for {len(aircraft)} aircraft")
        return tracks
