"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    Coordinates,
    HealthResponse,
    HistoryResponse,
    LocationSearchResponse,
    ReadingResponse,
)
from services.air_quality import AirQualityService, build_default_service
from services.errors import LocationNotFound
from settings import Settings, get_settings

router = APIRouter()


def get_service() -> AirQualityService:
    return build_default_service()


def get_app_settings() -> Settings:
    return get_settings()


@router.get(
    "/air",
    response_model=ReadingResponse,
    summary="Current air quality for a coordinate, served from cache when fresh.",
)
def get_air_quality(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    user_id: str = Query(..., alias="userId", min_length=1),
    max_age_minutes: Optional[int] = Query(None, alias="maxAgeMinutes", gt=0),
    service: AirQualityService = Depends(get_service),
    settings: Settings = Depends(get_app_settings),
) -> ReadingResponse:
    max_age = max_age_minutes or settings.direct_cache_max_age_minutes
    try:
        lookup = service.fetch_reading(user_id, lat, lon, max_age)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return ReadingResponse(reading=lookup.reading, cached=lookup.cached)


@router.get(
    "/air/history",
    response_model=HistoryResponse,
    summary="Stored readings for a user and coordinate over the last few days.",
)
def get_air_history(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    user_id: str = Query(..., alias="userId", min_length=1),
    days: int = Query(7, gt=0, le=365),
    service: AirQualityService = Depends(get_service),
) -> HistoryResponse:
    readings = service.fetch_history(user_id, lat, lon, days)
    return HistoryResponse(
        data=readings,
        period=days,
        total_readings=len(readings),
        location=Coordinates(lat=lat, lon=lon),
    )


@router.get(
    "/location/search",
    response_model=LocationSearchResponse,
    summary="Resolve an address and return its current air quality.",
)
def search_location(
    q: str = Query(..., min_length=1, description="Free-text address."),
    user_id: str = Query(..., alias="userId", min_length=1),
    service: AirQualityService = Depends(get_service),
    settings: Settings = Depends(get_app_settings),
) -> LocationSearchResponse:
    try:
        result = service.reading_for_address(q, user_id, settings.cache_max_age_minutes)
    except LocationNotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return LocationSearchResponse(
        location=result.location,
        air_quality=result.lookup.reading,
        cached=result.lookup.cached,
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc),
        has_primary_key=settings.openweather_api_key is not None,
        has_regional_key=settings.airnow_api_key is not None,
        has_geocode_key=settings.geocode_api_key is not None,
    )


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
