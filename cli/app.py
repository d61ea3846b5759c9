from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_dive, render_dive_list, render_timeline
from models.records import SortMode
from services.simulator import simulated_dives


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for sending dives to and browsing the dive timeline service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _read_payloads(path: Path) -> List[Dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"File {path} is not valid JSON: {exc.msg}.") from exc
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and all(isinstance(item, dict) for item in data):
        return data
    raise typer.BadParameter(f"File {path} must hold a dive object or a list of dive objects.")


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Dive timeline API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each request (defaults to CLI_TIMEOUT env or 30).",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="JSON file with one dive or a list of dives."
    ),
) -> None:
    """Send recorded dive summaries to the service."""
    state = _get_state(ctx)
    payloads = _read_payloads(file)
    typer.echo(f"Sending {len(payloads)} dive(s) to {state.config.base_url} ...")
    for payload in payloads:
        response = state.client.send_dive(payload)
        typer.secho(f"Dive accepted. id={response.get('id')}", fg=typer.colors.GREEN)


@app.command("list")
def list_command(
    ctx: typer.Context,
    sort: SortMode = typer.Option(SortMode.date_desc, "--sort", help="Ordering of the list."),
    location: Optional[str] = typer.Option(None, "--location", help="Only dives in this city."),
) -> None:
    """List the dives the service knows about."""
    state = _get_state(ctx)
    payload = state.client.list_dives(sort=sort.value, location=location)
    render_dive_list(payload)


@app.command("show")
def show_command(
    ctx: typer.Context,
    dive_id: str = typer.Argument(..., help="Identifier of the dive."),
) -> None:
    """Show one dive summary."""
    state = _get_state(ctx)
    render_dive(state.client.get_dive(dive_id))


@app.command("timeline")
def timeline_command(
    ctx: typer.Context,
    dive_id: str = typer.Argument(..., help="Identifier of the dive."),
    at: float = typer.Option(0.0, "--at", help="Seconds from the start of the dive."),
) -> None:
    """Read depth, heart rate and water temperature at one moment of a dive."""
    state = _get_state(ctx)
    render_timeline(state.client.get_timeline(dive_id, at))


@app.command("simulate")
def simulate_command(
    ctx: typer.Context,
    count: int = typer.Option(3, "--count", min=1, help="Number of simulated dives to send."),
) -> None:
    """Send simulated dives, useful for exercising the viewer without a watch."""
    state = _get_state(ctx)
    dives = simulated_dives(count=count)
    for dive in dives:
        response = state.client.send_dive(dive.to_payload())
        typer.secho(f"Dive accepted. id={response.get('id')}", fg=typer.colors.GREEN)
    typer.echo(f"Sent {len(dives)} simulated dive(s).")
