"""Geocoding backends used to turn an address into coordinates."""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

import httpx

from models.readings import GeoLocation
from services.errors import ResolutionError

MAPS_CO_URL = "https://geocode.maps.co/search"
NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"


def _get_json(
    client: httpx.Client,
    backend: str,
    url: str,
    params: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    try:
        response = client.get(url, params=params, headers=headers)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as exc:
        status_code = exc.response.status_code
        raise ResolutionError(backend, f"status {status_code}", status_code=status_code) from exc
    except httpx.HTTPError as exc:
        raise ResolutionError(backend, f"request failed: {exc!r}") from exc
    except ValueError as exc:
        raise ResolutionError(backend, "response is not valid JSON") from exc


def _first_result(data: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(data, list) or not data:
        return None
    first = data[0]
    return first if isinstance(first, dict) else None


def _parse_coordinate(value: Any) -> Optional[float]:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _location(lat: Any, lon: Any, label: Any, address: str) -> Optional[GeoLocation]:
    parsed_lat = _parse_coordinate(lat)
    parsed_lon = _parse_coordinate(lon)
    if parsed_lat is None or parsed_lon is None:
        return None
    label_text = label.strip() if isinstance(label, str) else ""
    return GeoLocation(lat=parsed_lat, lon=parsed_lon, label=label_text or address)


class MapsCoBackend:
    """geocode.maps.co, authenticated with an API key."""

    name = "geocode.maps.co"

    def __init__(self, client: httpx.Client, api_key: Optional[str]) -> None:
        self._client = client
        self._api_key = api_key

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def lookup(self, address: str) -> Optional[GeoLocation]:
        if not self._api_key:
            raise ResolutionError(self.name, "API key not configured")
        data = _get_json(
            self._client,
            self.name,
            MAPS_CO_URL,
            params={"q": address, "api_key": self._api_key},
        )
        first = _first_result(data)
        if first is None:
            return None
        return _location(first.get("lat"), first.get("lon"), first.get("display_name"), address)


class NominatimBackend:
    """OpenStreetMap Nominatim; free, but requires an identifying User-Agent."""

    name = "nominatim"
    configured = True

    def __init__(self, client: httpx.Client, user_agent: str) -> None:
        self._client = client
        self._user_agent = user_agent

    def lookup(self, address: str) -> Optional[GeoLocation]:
        data = _get_json(
            self._client,
            self.name,
            NOMINATIM_URL,
            params={"q": address, "format": "json", "limit": 1},
            headers={"User-Agent": self._user_agent},
        )
        first = _first_result(data)
        if first is None:
            return None
        label = first.get("display_name") or first.get("name")
        return _location(first.get("lat"), first.get("lon"), label, address)
