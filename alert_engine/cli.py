"""
SkySpy Alerts CLI - evaluate one aircraft snapshot and show the alert picture.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import click
from pydantic import TypeAdapter
from rich.console import Console
from rich.table import Table
from rich import box

from alert_engine.core.config import get_settings
from alert_engine.engine import AlertEngine
from alert_engine.schemas import ProjectedTrack, Severity
from alert_engine.services.ingest import parse_snapshot
from alert_engine.services.projector import HttpProjector
from alert_engine.services.weather import GeoMetRadarSampler

console = Console()

SEVERITY_STYLE = {
    Severity.WARNING: "bold red",
    Severity.CAUTION: "dark_orange",
    Severity.INFO: "grey70",
}


def _load_json(path: Path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _static_projector(tracks: list[ProjectedTrack]):
    async def project(_aircraft):
        return tracks
    return project


def _render(engine: AlertEngine):
    table = Table(box=box.SIMPLE_HEAVY, title=f"Alerts ({len(engine.visible_alerts)})")
    table.add_column("Severity")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Details")
    table.add_column("Aircraft")

    selected = engine.selected_conflict
    for alert in engine.visible_alerts:
        marker = ""
        if selected is not None and getattr(alert, "conflict", None) is not None:
            if alert.conflict.key == selected.key:
                marker = " *"
        table.add_row(
            f"[{SEVERITY_STYLE[alert.severity]}]{alert.severity.value}{marker}[/]",
            alert.type,
            alert.title,
            alert.details,
            " • ".join(alert.involved_ids),
        )

    console.print(table)
    console.print(
        f"[grey58]aircraft {len(engine.aircraft)} • tracks {len(engine.tracks)} • "
        f"conflicts {len(engine.conflicts)}[/]"
    )
    if engine.status:
        console.print(f"[yellow]{engine.status}[/]")


@click.group()
@click.option("--log-level", default=None, help="Logging level (default from settings)")
def main(log_level: Optional[str]):
    """SkySpy conflict & alert engine tools."""
    level = (log_level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO))


@main.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--tracks", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Projected tracks JSON (skips the projector service)")
@click.option("--project", is_flag=True, help="Call the projector service for tracks")
@click.option("--no-weather", is_flag=True, help="Skip radar sampling")
@click.option("--min-severity", type=click.Choice([s.value for s in Severity]), default="info")
@click.option("--now", type=float, default=None, help="Tick time (unix seconds)")
@click.option("--json", "as_json", is_flag=True, help="Print the engine snapshot as JSON")
def evaluate(snapshot: Path, tracks: Optional[Path], project: bool, no_weather: bool,
             min_severity: str, now: Optional[float], as_json: bool):
    """
    Run one tick over SNAPSHOT (a list of aircraft, or readsb aircraft.json).

    Examples:
      skyspy-alerts evaluate aircraft.json --tracks projected.json
      skyspy-alerts evaluate aircraft.json --project --min-severity caution
    """
    settings = get_settings()
    raw = _load_json(snapshot)
    if isinstance(raw, dict):
        if now is None and isinstance(raw.get("now"), (int, float)):
            now = float(raw["now"])
        raw = raw.get("aircraft", [])
    aircraft = parse_snapshot(raw, settings.max_aircraft)

    projector = None
    if tracks is not None:
        projector = _static_projector(TypeAdapter(list[ProjectedTrack]).validate_python(_load_json(tracks)))
    elif project:
        projector = HttpProjector(settings)

    sampler = None if no_weather or not settings.weather_enabled else GeoMetRadarSampler(settings)

    engine = AlertEngine(settings=settings, projector=projector, sampler=sampler)
    engine.set_min_severity(min_severity)
    asyncio.run(engine.tick(aircraft, now=now))

    if as_json:
        click.echo(engine.snapshot().model_dump_json(indent=2))
    else:
        _render(engine)


if __name__ == "__main__":
    main()
