"""Client for the EPA AirNow current-observation API (United States only)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from models.provider_results import RegionalResult
from services.errors import ProviderError

AIRNOW_URL = "https://www.airnowapi.org/aq/observation/latLong/current/"
PROVIDER_NAME = "airnow"
DEFAULT_DISTANCE_MILES = 25


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


# Rough rectangle around the contiguous United States.
CONTIGUOUS_US = BoundingBox(min_lat=24.0, max_lat=49.0, min_lon=-125.0, max_lon=-66.0)


class AirNowProvider:
    """Regional provider, only consulted inside :attr:`coverage`."""

    name = PROVIDER_NAME

    def __init__(
        self,
        client: httpx.Client,
        api_key: Optional[str],
        coverage: BoundingBox = CONTIGUOUS_US,
        distance_miles: int = DEFAULT_DISTANCE_MILES,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self.coverage = coverage
        self.distance_miles = distance_miles

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def covers(self, lat: float, lon: float) -> bool:
        return self.coverage.contains(lat, lon)

    def fetch(self, lat: float, lon: float) -> Optional[RegionalResult]:
        """Return the station observations, or ``None`` when there are none.

        Raises:
            ProviderError: on transport errors, timeouts, non-2xx statuses or
                a body that is not a JSON array.
        """
        if not self._api_key:
            raise ProviderError(self.name, "API key not configured")

        params = {
            "format": "application/json",
            "latitude": f"{lat:.4f}",
            "longitude": f"{lon:.4f}",
            "distance": self.distance_miles,
            "API_KEY": self._api_key,
        }
        try:
            response = self._client.get(AIRNOW_URL, params=params)
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

        if not isinstance(data, list):
            raise ProviderError(self.name, "unexpected response shape")
        if not data:
            return None
        return RegionalResult(observations=data)
