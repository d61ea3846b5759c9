from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value if value is not None else '--'}")


def _format_epoch(value: Any) -> Any:
    if not isinstance(value, (int, float)):
        return value
    return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _format_elapsed(seconds: Any) -> str:
    if not isinstance(seconds, (int, float)):
        return "--"
    total = max(0, int(seconds))
    return f"{total // 60:02d}:{total % 60:02d}"


def render_dive(payload: Dict[str, Any]) -> None:
    echo_heading("Dive")
    echo_key_values(
        [
            ("id", payload.get("id")),
            ("start", _format_epoch(payload.get("startDate"))),
            ("end", _format_epoch(payload.get("endDate"))),
            ("duration", _format_elapsed(payload.get("durationSeconds"))),
            ("max_depth_m", payload.get("maxDepthMeters")),
            ("ending_heart_rate", payload.get("endingHeartRate")),
            ("water_temp_c", payload.get("waterTemperatureCelsius")),
            ("location", payload.get("locationDescription")),
            ("weather", payload.get("weatherSummary")),
        ]
    )

    typer.echo()
    echo_heading("Samples")
    echo_key_values(
        [
            ("profile", len(payload.get("profile") or [])),
            ("heart_rate", len(payload.get("heartRateSamples") or [])),
            ("water_temp", len(payload.get("waterTempSamples") or [])),
        ]
    )


def render_dive_list(payload: Dict[str, Any]) -> None:
    dives = payload.get("dives") or []
    echo_heading(f"Dives ({len(dives)})")
    if not dives:
        typer.echo("No dives recorded yet.")
        return
    for dive in dives:
        location = dive.get("locationDescription") or "Unknown location"
        typer.echo(
            f"  - {dive.get('id')} | {_format_epoch(dive.get('endDate'))} | "
            f"{_format_elapsed(dive.get('durationSeconds'))} | "
            f"{dive.get('maxDepthMeters', 0):.1f} m | {location}"
        )


def render_timeline(payload: Dict[str, Any]) -> None:
    echo_heading(
        f"At {_format_elapsed(payload.get('seconds'))} of "
        f"{_format_elapsed(payload.get('duration_seconds'))}"
    )
    echo_key_values(
        [
            ("depth_m", payload.get("depth_meters")),
            ("heart_rate_bpm", payload.get("heart_rate")),
            ("water_temp_c", payload.get("water_temperature_celsius")),
        ]
    )
