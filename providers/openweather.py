"""Client for the OpenWeather air pollution API (global coverage)."""

from __future__ import annotations

from typing import Optional

import httpx

from models.provider_results import PrimaryResult
from services.errors import ProviderError

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/air_pollution"
PROVIDER_NAME = "openweather"


class OpenWeatherProvider:
    """Primary provider; queried first for every coordinate."""

    name = PROVIDER_NAME

    def __init__(self, client: httpx.Client, api_key: Optional[str]) -> None:
        self._client = client
        self._api_key = api_key

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def fetch(self, lat: float, lon: float) -> Optional[PrimaryResult]:
        """Return the first reading of the response, or ``None`` if the list is empty.

        Raises:
            ProviderError: on transport errors, timeouts, non-2xx statuses or
                a body that is not the documented JSON shape.
        """
        if not self._api_key:
            raise ProviderError(self.name, "API key not configured")

        try:
            response = self._client.get(
                OPENWEATHER_URL,
                params={"lat": lat, "lon": lon, "appid": self._api_key},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            raise ProviderError(
                self.name, f"status {status_code}", status_code=status_code
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, f"request failed: {exc!r}") from exc
        except ValueError as exc:
            raise ProviderError(self.name, "response is not valid JSON") from exc

        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected response shape")
        entries = data.get("list")
        if not isinstance(entries, list) or not entries:
            return None
        first = entries[0]
        if not isinstance(first, dict):
            raise ProviderError(self.name, "unexpected reading shape")
        return PrimaryResult(payload=first)
