from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import httpx
import pytest

from datastore.reading_store import ReadingStore
from models.provider_results import RegionalResult
from models.readings import CanonicalReading, Category, ReadingSource
from providers.airnow import AirNowProvider
from providers.geocoding import MapsCoBackend, NominatimBackend
from providers.openweather import OpenWeatherProvider
from services.air_quality import AirQualityService, normalize_result
from services.errors import LocationNotFound, ReadingStoreError
from services.geocoder import GeocodingResolver

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
NEW_YORK = (40.7128, -74.006)
LONDON = (51.5074, -0.1278)

Handler = Callable[[httpx.Request], httpx.Response]


class SpyAirNowProvider(AirNowProvider):
    def __init__(self, client: httpx.Client, api_key: Optional[str]) -> None:
        super().__init__(client, api_key)
        self.calls: List[tuple[float, float]] = []

    def fetch(self, lat: float, lon: float) -> Optional[RegionalResult]:
        self.calls.append((lat, lon))
        return super().fetch(lat, lon)


class FailingStore(ReadingStore):
    def insert(self, reading: CanonicalReading) -> CanonicalReading:
        raise ReadingStoreError("disk full")


def _build_service(
    handler: Handler,
    seen: Optional[List[httpx.Request]] = None,
    store: Optional[ReadingStore] = None,
    openweather_key: Optional[str] = "ow-key",
    airnow_key: Optional[str] = "an-key",
    clock: Callable[[], datetime] = lambda: FIXED_NOW,
) -> AirQualityService:
    requests = seen if seen is not None else []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.Client(transport=httpx.MockTransport(record))
    return AirQualityService(
        store=store or ReadingStore(),
        primary=OpenWeatherProvider(client, openweather_key),
        regional=SpyAirNowProvider(client, airnow_key),
        geocoder=GeocodingResolver(
            [MapsCoBackend(client, "geo-key"), NominatimBackend(client, "test-agent")]
        ),
        http_client=client,
        clock=clock,
    )


def _hosts(seen: List[httpx.Request]) -> List[str]:
    return [request.url.host for request in seen]


def test_primary_success_is_normalized_and_persisted() -> None:
    seen: List[httpx.Request] = []
    payload = {"list": [{"main": {"aqi": 3}, "components": {"pm2_5": 40.0, "pm10": 60.0, "o3": 20.0}}]}
    service = _build_service(lambda request: httpx.Response(200, json=payload), seen)

    lookup = service.fetch_reading("user-1", *LONDON)

    reading = lookup.reading
    assert lookup.cached is False
    assert reading.aqi == 150
    assert reading.category is Category.unhealthy_for_sensitive_groups
    assert reading.dominant_pollutant == "PM2.5"
    assert reading.source is ReadingSource.primary
    assert reading.timestamp == FIXED_NOW
    assert reading.user_id == "user-1"
    assert reading.id is not None
    assert service.store.get(reading.id) == reading
    assert _hosts(seen) == ["api.openweathermap.org"]


def test_primary_timeout_falls_back_to_regional() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.openweathermap.org":
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(
            200,
            json=[
                {
                    "ParameterName": "PM2.5",
                    "AQI": 120,
                    "Value": 55.4,
                    "Category": {"Name": "Unhealthy for Sensitive Groups"},
                }
            ],
        )

    service = _build_service(handler, seen)

    reading = service.fetch_reading("user-1", *NEW_YORK).reading

    assert reading.aqi == 120
    assert reading.dominant_pollutant == "PM2.5"
    assert reading.source is ReadingSource.regional
    assert reading.source.value == "regional-provider"
    assert _hosts(seen) == ["api.openweathermap.org", "www.airnowapi.org"]


def test_total_failure_outside_box_serves_synthetic(caplog) -> None:
    seen: List[httpx.Request] = []
    service = _build_service(lambda request: httpx.Response(500), seen)

    with caplog.at_level(logging.WARNING, logger="services.air_quality"):
        reading = service.fetch_reading("user-1", *LONDON).reading

    assert reading.source is ReadingSource.synthetic
    assert (reading.pm25, reading.pm10, reading.o3, reading.no2) == (25.0, 45.0, 60.0, 30.0)
    assert reading.aqi == 100
    assert service.regional.calls == []  # type: ignore[attr-defined]
    assert _hosts(seen) == ["api.openweathermap.org"]
    failures = [record for record in caplog.records if getattr(record, "provider", None) == "openweather"]
    assert failures
    assert failures[0].status_code == 500


def test_regional_never_called_outside_box_even_when_configured() -> None:
    service = _build_service(lambda request: httpx.Response(200, json={"list": []}))

    for lat, lon in [LONDON, (19.4326, -99.1332), (-33.8688, 151.2093), (60.0, -150.0)]:
        service.fetch_reading("user-1", lat, lon)

    assert service.regional.calls == []  # type: ignore[attr-defined]


def test_regional_skipped_without_credential() -> None:
    seen: List[httpx.Request] = []
    service = _build_service(lambda request: httpx.Response(500), seen, airnow_key=None)

    reading = service.fetch_reading("user-1", *NEW_YORK).reading

    assert reading.source is ReadingSource.synthetic
    assert _hosts(seen) == ["api.openweathermap.org"]


def test_primary_without_pollutants_is_treated_as_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.openweathermap.org":
            return httpx.Response(200, json={"list": [{"main": {"aqi": 2}, "components": {}}]})
        return httpx.Response(200, json=[{"ParameterName": "O3", "AQI": 35, "Value": 30.0}])

    reading = _build_service(handler).fetch_reading("user-1", *NEW_YORK).reading

    assert reading.source is ReadingSource.regional
    assert reading.dominant_pollutant == "O3"


def test_unconfigured_primary_goes_straight_to_regional() -> None:
    seen: List[httpx.Request] = []
    service = _build_service(
        lambda request: httpx.Response(200, json=[{"ParameterName": "PM10", "AQI": 55, "Value": 64.0}]),
        seen,
        openweather_key=None,
    )

    reading = service.fetch_reading("user-1", *NEW_YORK).reading

    assert reading.source is ReadingSource.regional
    assert reading.category is Category.moderate
    assert _hosts(seen) == ["www.airnowapi.org"]


def test_cache_hit_skips_providers_and_persistence() -> None:
    seen: List[httpx.Request] = []
    store = ReadingStore()
    existing = store.insert(
        CanonicalReading(
            user_id="user-1",
            lat=LONDON[0],
            lon=LONDON[1],
            timestamp=FIXED_NOW - timedelta(minutes=5),
            pm25=3.0,
            aqi=50,
            category=Category.good,
            source=ReadingSource.primary,
        )
    )
    service = _build_service(lambda request: httpx.Response(500), seen, store=store)

    lookup = service.fetch_reading("user-1", *LONDON, max_age_minutes=30)

    assert lookup.cached is True
    assert lookup.reading.id == existing.id
    assert seen == []
    assert len(store.scan()) == 1


def test_stale_cache_queries_upstream_again() -> None:
    store = ReadingStore()
    store.insert(
        CanonicalReading(
            user_id="user-1",
            lat=LONDON[0],
            lon=LONDON[1],
            timestamp=FIXED_NOW - timedelta(minutes=5),
            pm25=3.0,
            aqi=50,
            category=Category.good,
            source=ReadingSource.primary,
        )
    )
    seen: List[httpx.Request] = []
    service = _build_service(lambda request: httpx.Response(500), seen, store=store)

    lookup = service.fetch_reading("user-1", *LONDON, max_age_minutes=3)

    assert lookup.cached is False
    assert _hosts(seen) == ["api.openweathermap.org"]
    assert len(store.scan()) == 2


def test_second_fetch_under_fixed_clock_is_served_from_cache() -> None:
    seen: List[httpx.Request] = []
    payload = {"list": [{"main": {"aqi": 1}, "components": {"pm2_5": 4.0}}]}
    service = _build_service(lambda request: httpx.Response(200, json=payload), seen)

    first = service.fetch_reading("user-1", *LONDON)
    second = service.fetch_reading("user-1", *LONDON)

    assert first.cached is False
    assert second.cached is True
    assert second.reading.id == first.reading.id
    assert _hosts(seen) == ["api.openweathermap.org"]


def test_persistence_failure_still_returns_reading(caplog) -> None:
    service = _build_service(lambda request: httpx.Response(500), store=FailingStore())

    with caplog.at_level(logging.WARNING, logger="services.air_quality"):
        lookup = service.fetch_reading("user-1", *LONDON)

    assert lookup.reading.source is ReadingSource.synthetic
    assert lookup.reading.id is None
    assert lookup.reading.user_id == "user-1"
    assert any("persist" in record.getMessage() for record in caplog.records)


def test_invalid_coordinates_are_rejected() -> None:
    service = _build_service(lambda request: httpx.Response(500))

    with pytest.raises(ValueError):
        service.fetch_reading("user-1", float("nan"), 0.0)
    with pytest.raises(ValueError):
        service.fetch_reading("", 1.0, 1.0)


def test_address_flow_uses_fallback_geocoder_label() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "geocode.maps.co":
            raise httpx.ConnectError("down", request=request)
        if host == "nominatim.openstreetmap.org":
            return httpx.Response(
                200, json=[{"lat": "51.5074", "lon": "-0.1278", "display_name": "London, Greater London, England"}]
            )
        return httpx.Response(200, json={"list": [{"main": {"aqi": 1}, "components": {"no2": 12.0}}]})

    result = _build_service(handler, seen).reading_for_address("london", "user-1")

    assert result.location.label == "London, Greater London, England"
    assert result.location.label != "london"
    assert result.lookup.reading.lat == 51.5074
    assert result.lookup.reading.source is ReadingSource.primary
    assert _hosts(seen) == ["geocode.maps.co", "nominatim.openstreetmap.org", "api.openweathermap.org"]


def test_address_flow_surfaces_not_found() -> None:
    service = _build_service(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(LocationNotFound):
        service.reading_for_address("nowhere at all", "user-1")


def test_history_returns_persisted_readings() -> None:
    service = _build_service(lambda request: httpx.Response(500), clock=lambda: datetime.now(timezone.utc))

    service.fetch_reading("user-1", *LONDON, max_age_minutes=1)

    history = service.fetch_history("user-1", *LONDON, days=1)
    assert [item.source for item in history] == [ReadingSource.synthetic]
    with pytest.raises(ValueError):
        service.fetch_history("user-1", *LONDON, days=0)


def test_normalize_result_rejects_unknown_variant() -> None:
    with pytest.raises(TypeError):
        normalize_result(object(), 0.0, 0.0, FIXED_NOW)  # type: ignore[arg-type]
