"""PolarWatch CLI: vessel movement classification and dark vessel triage.

Commands:
  analyze     analyse positions/detections from local CSV or JSON files
  fetch       pull a window from the AIS and sensor services, then analyse
  version     print the package version
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from polarwatch.config import settings
from polarwatch.schemas.analysis import WindowAnalysis
from polarwatch.schemas.base import ConsistencySummaryEnum, SeverityEnum

__version__ = "0.1.0"

app = typer.Typer(
    name="polarwatch",
    help="Vessel movement classification and dark vessel detection.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

_SEVERITY_STYLE = {
    SeverityEnum.HIGH: "red",
    SeverityEnum.MEDIUM: "yellow",
    SeverityEnum.LOW: "cyan",
}
_SUMMARY_STYLE = {
    ConsistencySummaryEnum.ALERT: "red",
    ConsistencySummaryEnum.WARN: "yellow",
    ConsistencySummaryEnum.OK: "green",
}


@app.callback()
def main(
    log_level: str = typer.Option(settings.LOG_LEVEL, "--log-level", help="Python logging level"),
):
    """Configure logging for every command."""
    logging.basicConfig(level=log_level.upper())


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("analyze")
def analyze(
    positions: Path = typer.Argument(..., exists=True, dir_okay=False, help="AIS positions (.csv or .json)"),
    detections: Optional[Path] = typer.Option(None, "--detections", "-d", exists=True, dir_okay=False, help="Sensor detections (.csv or .json)"),
    static: Optional[Path] = typer.Option(None, "--static", "-s", exists=True, dir_okay=False, help="Static vessel info (.json)"),
    forced_dark: Optional[list[str]] = typer.Option(None, "--forced-dark", help="MMSI to always flag as dark (repeatable)"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Analyse positions and detections from local files."""
    from polarwatch.modules.ingest import load_detections, load_positions, load_static_infos
    from polarwatch.modules.vessel_analysis import analyze_window

    try:
        pos = load_positions(positions)
        dets = load_detections(detections) if detections else []
        statics = load_static_infos(static) if static else {}
    except ValueError as e:
        console.print(f"[red]Could not load input: {e}[/red]")
        raise typer.Exit(1)

    result = analyze_window(
        pos,
        dets,
        static_lookup=statics.get,
        forced_dark_mmsis=forced_dark or None,
    )
    _emit(result, as_json)


@app.command("fetch")
def fetch(
    bbox: str = typer.Option(..., "--bbox", help="lon1,lat1,lon2,lat2 (south-west corner first)"),
    start: datetime = typer.Option(..., "--start", help="Window start (ISO, UTC)"),
    end: datetime = typer.Option(..., "--end", help="Window end (ISO, UTC)"),
    min_speed: float = typer.Option(0.0, "--min-speed", help="Drop positions slower than this (kn)"),
    with_static: bool = typer.Option(True, "--static/--no-static", help="Look up static identity per vessel"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Fetch a window from the AIS and sensor services, then analyse it."""
    from polarwatch.modules.ais_client import fetch_positions, static_lookup_at
    from polarwatch.modules.classification_client import classify_detections
    from polarwatch.modules.vessel_analysis import analyze_window
    from polarwatch.schemas.position import BoundingBox

    try:
        area = BoundingBox.from_string(bbox)
    except ValueError as e:
        console.print(f"[red]Invalid --bbox: {e}[/red]")
        raise typer.Exit(1)
    start_utc = _as_utc(start)
    end_utc = _as_utc(end)
    if end_utc <= start_utc:
        console.print("[red]--end must be after --start[/red]")
        raise typer.Exit(1)

    with console.status("[bold]Fetching AIS positions..."):
        pos = fetch_positions(area, start_utc, end_utc, min_speed=min_speed)
    with console.status("[bold]Fetching sensor detections..."):
        dets = classify_detections(area, start_utc, end_utc)
    if not pos and not dets:
        console.print("[yellow]No positions or detections returned for this window.[/yellow]")

    lookup = static_lookup_at(end_utc) if with_static else None
    with console.status("[bold]Analysing vessels..."):
        result = analyze_window(pos, dets, static_lookup=lookup)
    _emit(result, as_json)


@app.command("version")
def version():
    """Print the PolarWatch version."""
    console.print(f"polarwatch {__version__}")


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)


def _emit(result: WindowAnalysis, as_json: bool) -> None:
    if as_json:
        typer.echo(result.model_dump_json(indent=2, exclude={"vessels": {"__all__": {"positions"}}}))
        return
    _print_vessels(result)
    _print_anomalies(result)
    _print_consistency(result)


def _print_vessels(result: WindowAnalysis) -> None:
    counts = result.classification_counts()
    caption = ", ".join(f"{c.value} {n}" for c, n in counts.items() if n)
    table = Table(title=f"Vessels ({len(result.vessels)})", caption=caption or None)
    table.add_column("MMSI", style="bold")
    table.add_column("Class")
    table.add_column("Points", justify="right")
    table.add_column("Hours", justify="right")
    table.add_column("Dist nm", justify="right")
    table.add_column("Avg kn", justify="right")
    table.add_column("Max kn", justify="right")
    table.add_column("Rationale")
    for v in result.vessels:
        m = v.metrics
        table.add_row(
            v.mmsi,
            v.classification.value,
            str(m.point_count),
            f"{m.duration_hours:.2f}",
            f"{m.total_distance_nm:.3f}",
            f"{m.avg_speed:.2f}",
            f"{m.max_speed:.2f}",
            v.rationale,
        )
    console.print(table)


def _print_anomalies(result: WindowAnalysis) -> None:
    if not result.anomalies:
        console.print("[green]No dark vessel anomalies.[/green]")
        return
    table = Table(title=f"Dark vessel anomalies ({len(result.anomalies)})")
    table.add_column("Type", style="bold")
    table.add_column("Severity")
    table.add_column("MMSI")
    table.add_column("Where / when")
    table.add_column("Description")
    for a in result.anomalies:
        where = ""
        if a.detection is not None:
            d = a.detection
            where = f"{d.latitude:.4f},{d.longitude:.4f} {d.timestamp:%Y-%m-%d %H:%M}"
        style = _SEVERITY_STYLE[a.severity]
        table.add_row(
            a.type.value,
            f"[{style}]{a.severity.value}[/{style}]",
            a.mmsi or "-",
            where,
            a.description,
        )
    console.print(table)


def _print_consistency(result: WindowAnalysis) -> None:
    flagged = [r for r in result.reports if r.issues]
    if not flagged:
        console.print("[green]All declared identities consistent.[/green]")
        return
    table = Table(title=f"Consistency issues ({len(flagged)} vessels)")
    table.add_column("MMSI", style="bold")
    table.add_column("Summary")
    table.add_column("Declared")
    table.add_column("Inferred")
    table.add_column("Issues")
    for r in flagged:
        style = _SUMMARY_STYLE[r.summary]
        table.add_row(
            r.mmsi,
            f"[{style}]{r.summary.value}[/{style}]",
            r.declared_type or "-",
            r.inferred_type or "-",
            "\n".join(f"{i.code.value}: {i.message}" for i in r.issues),
        )
    console.print(table)


if __name__ == "__main__":
    app()
