"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from models.readings import CanonicalReading, GeoLocation


class ReadingResponse(BaseModel):
    """A reading plus whether it was served from the freshness cache."""

    reading: CanonicalReading
    cached: bool = Field(..., description="True when no upstream provider was called.")


class LocationSearchResponse(BaseModel):
    location: GeoLocation
    air_quality: CanonicalReading
    cached: bool


class Coordinates(BaseModel):
    lat: float
    lon: float


class HistoryResponse(BaseModel):
    """Stored readings for one user and coordinate, oldest first."""

    data: List[CanonicalReading] = Field(default_factory=list)
    period: int = Field(..., ge=1, description="Window size in days.")
    total_readings: int = Field(..., ge=0)
    location: Coordinates


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    has_primary_key: bool
    has_regional_key: bool
    has_geocode_key: bool
