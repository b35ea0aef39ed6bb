"""Canonical shapes every upstream source is normalized into."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Category(str, Enum):
    """Health categories of the 0-500 AQI scale, least to most severe."""

    good = "Good"
    moderate = "Moderate"
    unhealthy_for_sensitive_groups = "Unhealthy for Sensitive Groups"
    unhealthy = "Unhealthy"
    very_unhealthy = "Very Unhealthy"
    hazardous = "Hazardous"

    @property
    def severity(self) -> int:
        return list(Category).index(self)

    @classmethod
    def for_aqi(cls, aqi: int) -> "Category":
        for upper_bound, category in _CATEGORY_BANDS:
            if aqi <= upper_bound:
                return category
        return cls.hazardous


# Upper bound (inclusive) of each band; anything above the last is hazardous.
_CATEGORY_BANDS = (
    (50, Category.good),
    (100, Category.moderate),
    (150, Category.unhealthy_for_sensitive_groups),
    (200, Category.unhealthy),
    (300, Category.very_unhealthy),
)


class Pollutant(str, Enum):
    """Pollutants tracked by a reading, in tie-breaking order."""

    pm25 = "PM2.5"
    pm10 = "PM10"
    o3 = "O3"
    no2 = "NO2"


class ReadingSource(str, Enum):
    primary = "primary-provider"
    regional = "regional-provider"
    synthetic = "synthetic"


def _require_finite(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError("coordinate must be a finite number")
    return value


class CanonicalReading(BaseModel):
    """Provider-agnostic air quality reading."""

    id: Optional[str] = Field(default=None, description="Assigned by the reading store on insert.")
    user_id: Optional[str] = None
    lat: float
    lon: float
    timestamp: datetime
    pm25: Optional[float] = None
    pm10: Optional[float] = None
    o3: Optional[float] = None
    no2: Optional[float] = None
    aqi: Optional[int] = Field(default=None, ge=0, le=500)
    category: Optional[Category] = None
    dominant_pollutant: Optional[str] = None
    source: ReadingSource
    raw_payload: Any = Field(
        default=None, description="Copy of the upstream response, kept for auditing only."
    )

    @field_validator("lat", "lon")
    @classmethod
    def _finite_coordinates(cls, value: float) -> float:
        return _require_finite(value)

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _consistent_reading(self) -> "CanonicalReading":
        """Fill a missing category from ``aqi`` and reject contradictory readings."""
        if self.aqi is None:
            if self.category is not None:
                raise ValueError("category requires an aqi value")
        else:
            expected = Category.for_aqi(self.aqi)
            if self.category is None:
                self.category = expected
            elif self.category is not expected:
                raise ValueError(
                    f"category {self.category.value!r} does not match aqi {self.aqi}"
                )
        if self.source is ReadingSource.synthetic and None in (
            self.pm25,
            self.pm10,
            self.o3,
            self.no2,
        ):
            raise ValueError("synthetic readings must carry every pollutant value")
        return self


class GeoLocation(BaseModel):
    """Result of resolving a free-text address."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float
    label: str

    @field_validator("lat", "lon")
    @classmethod
    def _finite_coordinates(cls, value: float) -> float:
        return _require_finite(value)


@dataclass(frozen=True)
class CacheKey:
    """Exact (user, coordinate) identity used by the freshness cache."""

    user_id: str
    lat: float
    lon: float

    def matches(self, reading: CanonicalReading) -> bool:
        return (
            reading.user_id == self.user_id
            and reading.lat == self.lat
            and reading.lon == self.lon
        )
