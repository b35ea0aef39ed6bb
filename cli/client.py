from __future__ import annotations

from typing import Any, Dict

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the air quality gateway."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_reading(self, lat: float, lon: float, user_id: str) -> Dict[str, Any]:
        return self._get("/air", {"lat": lat, "lon": lon, "userId": user_id})

    def search_location(self, address: str, user_id: str) -> Dict[str, Any]:
        try:
            response = self._client.get(
                "/location/search", params={"q": address, "userId": user_id}
            )
            if response.status_code == 404:
                raise typer.BadParameter(f"Location {address!r} could not be resolved.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def get_history(self, lat: float, lon: float, user_id: str, days: int) -> Dict[str, Any]:
        return self._get(
            "/air/history", {"lat": lat, "lon": lon, "userId": user_id, "days": days}
        )

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
