"""Top-level acquisition pipeline: cache, provider fallback chain, persistence."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Optional, Union

import httpx

from datastore.reading_store import ReadingStore, build_default_store
from models.provider_results import (
    PrimaryResult,
    ProviderResult,
    RegionalResult,
    SyntheticResult,
)
from models.readings import CanonicalReading, GeoLocation
from providers.airnow import AirNowProvider
from providers.geocoding import MapsCoBackend, NominatimBackend
from providers.openweather import OpenWeatherProvider
from services.cache_gate import DEFAULT_MAX_AGE_MINUTES, FreshnessCacheGate
from services.errors import ProviderError, ReadingStoreError
from services.geocoder import GeocodingResolver
from services.normalizers import normalize_primary, normalize_regional, synthetic_reading
from settings import get_settings

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReadingLookup:
    reading: CanonicalReading
    cached: bool


@dataclass(frozen=True)
class AddressReading:
    location: GeoLocation
    lookup: ReadingLookup


def normalize_result(
    result: ProviderResult, lat: float, lon: float, captured_at: datetime
) -> Optional[CanonicalReading]:
    """Dispatch a provider result to its normalizer."""
    if isinstance(result, PrimaryResult):
        return normalize_primary(result, lat, lon, captured_at)
    if isinstance(result, RegionalResult):
        return normalize_regional(result, lat, lon, captured_at)
    if isinstance(result, SyntheticResult):
        return synthetic_reading(result.lat, result.lon, captured_at)
    raise TypeError(f"Unsupported provider result: {type(result).__name__}")


class AirQualityService:
    """Coordinates the freshness cache, the provider chain and the reading store.

    Providers are tried strictly in order (OpenWeather, then AirNow inside its
    coverage box, then synthetic data), one attempt each per request. Provider
    failures never reach the caller; the synthetic stage always produces a
    reading.
    """

    def __init__(
        self,
        store: ReadingStore,
        primary: OpenWeatherProvider,
        regional: AirNowProvider,
        geocoder: GeocodingResolver,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.cache_gate = FreshnessCacheGate(store, clock=clock)
        self.primary = primary
        self.regional = regional
        self.geocoder = geocoder
        self._http_client = http_client
        self._clock = clock

    def fetch_reading(
        self,
        user_id: str,
        lat: float,
        lon: float,
        max_age_minutes: float = DEFAULT_MAX_AGE_MINUTES,
    ) -> ReadingLookup:
        if not user_id:
            raise ValueError("user_id is required.")
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise ValueError("Latitude and longitude must be finite numbers.")

        cached = self.cache_gate.lookup(user_id, lat, lon, max_age_minutes)
        if cached is not None:
            return ReadingLookup(reading=cached, cached=True)

        captured_at = self._clock()
        reading = (
            self._try_primary(lat, lon, captured_at)
            or self._try_regional(lat, lon, captured_at)
            or self._synthesize(lat, lon, captured_at)
        )
        logger.info(
            "Acquired reading",
            extra={"user_id": user_id, "lat": lat, "lon": lon, "source": reading.source.value},
        )
        return ReadingLookup(reading=self._persist(reading, user_id), cached=False)

    def reading_for_address(
        self,
        address: str,
        user_id: str,
        max_age_minutes: float = DEFAULT_MAX_AGE_MINUTES,
    ) -> AddressReading:
        """Resolve ``address`` and fetch its reading.

        Raises:
            LocationNotFound: if no geocoding backend could resolve the address.
        """
        location = self.geocoder.resolve(address)
        lookup = self.fetch_reading(user_id, location.lat, location.lon, max_age_minutes)
        return AddressReading(location=location, lookup=lookup)

    def fetch_history(
        self, user_id: str, lat: float, lon: float, days: int = 7
    ) -> list[CanonicalReading]:
        if days <= 0:
            raise ValueError("days must be greater than zero.")
        return self.store.list_for_timeline(user_id, lat, lon, days)

    def close(self) -> None:
        """Release the shared upstream HTTP client."""
        if self._http_client is not None:
            self._http_client.close()

    def _try_primary(
        self, lat: float, lon: float, captured_at: datetime
    ) -> Optional[CanonicalReading]:
        if not self.primary.configured:
            logger.info("Primary provider not configured", extra={"provider": self.primary.name})
            return None
        return self._attempt(self.primary, lat, lon, captured_at)

    def _try_regional(
        self, lat: float, lon: float, captured_at: datetime
    ) -> Optional[CanonicalReading]:
        if not self.regional.covers(lat, lon):
            logger.debug(
                "Coordinates outside regional coverage",
                extra={"provider": self.regional.name, "lat": lat, "lon": lon},
            )
            return None
        if not self.regional.configured:
            logger.info("Regional provider not configured", extra={"provider": self.regional.name})
            return None
        return self._attempt(self.regional, lat, lon, captured_at)

    def _synthesize(self, lat: float, lon: float, captured_at: datetime) -> CanonicalReading:
        logger.warning(
            "All providers failed, serving synthetic reading",
            extra={"lat": lat, "lon": lon, "source": "synthetic"},
        )
        reading = normalize_result(SyntheticResult(lat=lat, lon=lon), lat, lon, captured_at)
        assert reading is not None
        return reading

    def _attempt(
        self,
        provider: Union[OpenWeatherProvider, AirNowProvider],
        lat: float,
        lon: float,
        captured_at: datetime,
    ) -> Optional[CanonicalReading]:
        try:
            result = provider.fetch(lat, lon)
        except ProviderError as exc:
            logger.warning(
                "Provider failed",
                extra={
                    "provider": provider.name,
                    "lat": lat,
                    "lon": lon,
                    "reason": exc.reason,
                    "status_code": exc.status_code,
                },
            )
            return None
        if result is None:
            logger.warning(
                "Provider returned no data",
                extra={"provider": provider.name, "lat": lat, "lon": lon},
            )
            return None
        reading = normalize_result(result, lat, lon, captured_at)
        if reading is None:
            logger.warning(
                "Provider payload had no usable pollutant data",
                extra={"provider": provider.name, "lat": lat, "lon": lon},
            )
        return reading

    def _persist(self, reading: CanonicalReading, user_id: str) -> CanonicalReading:
        owned = reading.model_copy(update={"user_id": user_id})
        try:
            stored = self.store.insert(owned)
        except ReadingStoreError as exc:
            logger.warning(
                "Failed to persist reading, returning it unsaved",
                extra={"user_id": user_id, "reason": str(exc)},
            )
            return owned
        logger.debug("Persisted reading", extra={"reading_id": stored.id, "user_id": user_id})
        return stored


@lru_cache
def build_default_service() -> AirQualityService:
    """Factory that wires the service with the configured upstreams."""
    settings = get_settings()
    client = httpx.Client(timeout=settings.upstream_timeout_seconds)
    geocoder = GeocodingResolver(
        [
            MapsCoBackend(client, settings.geocode_api_key),
            NominatimBackend(client, settings.geocode_user_agent),
        ]
    )
    return AirQualityService(
        store=build_default_store(),
        primary=OpenWeatherProvider(client, settings.openweather_api_key),
        regional=AirNowProvider(client, settings.airnow_api_key),
        geocoder=geocoder,
        http_client=client,
    )
