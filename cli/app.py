from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_history, render_location, render_reading


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Query the air quality gateway.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _resolve_user(state: CLIState, user_id: Optional[str]) -> str:
    user = user_id or state.config.user_id
    if not user:
        raise typer.BadParameter("A user id is required (--user or AIRQ_USER_ID).")
    return user


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Gateway base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("reading")
def reading_command(
    ctx: typer.Context,
    lat: float = typer.Argument(..., min=-90, max=90, help="Latitude in degrees."),
    lon: float = typer.Argument(..., min=-180, max=180, help="Longitude in degrees."),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="Requesting user id."),
) -> None:
    """Show the current air quality for a coordinate."""
    state = _get_state(ctx)
    payload = state.client.get_reading(lat, lon, _resolve_user(state, user_id))
    render_reading(payload.get("reading") or {}, cached=payload.get("cached"))


@app.command("search")
def search_command(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Free-text address to resolve."),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="Requesting user id."),
) -> None:
    """Resolve an address and show its air quality."""
    state = _get_state(ctx)
    payload = state.client.search_location(address, _resolve_user(state, user_id))
    render_location(payload)


@app.command("history")
def history_command(
    ctx: typer.Context,
    lat: float = typer.Argument(..., min=-90, max=90, help="Latitude in degrees."),
    lon: float = typer.Argument(..., min=-180, max=180, help="Longitude in degrees."),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="Requesting user id."),
    days: int = typer.Option(7, "--days", min=1, help="Number of days to include."),
) -> None:
    """List stored readings for a coordinate."""
    state = _get_state(ctx)
    payload = state.client.get_history(lat, lon, _resolve_user(state, user_id), days)
    render_history(payload)
