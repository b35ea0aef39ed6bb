from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(reading: Dict[str, Any], cached: bool | None = None) -> None:
    echo_heading("Air Quality")
    pairs = [
        ("lat", reading.get("lat")),
        ("lon", reading.get("lon")),
        ("timestamp", reading.get("timestamp")),
        ("source", reading.get("source")),
        ("aqi", reading.get("aqi")),
        ("category", reading.get("category")),
        ("dominant_pollutant", reading.get("dominant_pollutant")),
    ]
    if cached is not None:
        pairs.append(("cached", cached))
    echo_key_values(pairs)

    typer.echo()
    echo_heading("Pollutants")
    concentrations = [
        ("pm25", reading.get("pm25")),
        ("pm10", reading.get("pm10")),
        ("o3", reading.get("o3")),
        ("no2", reading.get("no2")),
    ]
    present = [(name, value) for name, value in concentrations if value is not None]
    if present:
        echo_key_values(present)
    else:
        typer.echo("No pollutant values reported.")


def render_location(payload: Dict[str, Any]) -> None:
    location = payload.get("location") or {}
    echo_heading("Location")
    echo_key_values(
        [
            ("label", location.get("label")),
            ("lat", location.get("lat")),
            ("lon", location.get("lon")),
        ]
    )
    typer.echo()
    render_reading(payload.get("air_quality") or {}, cached=payload.get("cached"))


def render_history(payload: Dict[str, Any]) -> None:
    echo_heading(f"History ({payload.get('period')} days)")
    readings = payload.get("data") or []
    if not readings:
        typer.echo("No readings recorded.")
        return
    for reading in readings:
        typer.echo(
            f"  - {reading.get('timestamp')}: aqi={reading.get('aqi')} "
            f"category={reading.get('category')} source={reading.get('source')}"
        )
    typer.echo(f"total_readings: {payload.get('total_readings')}")
