"""Raw results produced by each stage of the provider chain."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Union


@dataclass(frozen=True, slots=True)
class PrimaryResult:
    """First ``list`` entry of an OpenWeather air pollution response."""

    payload: Dict[str, Any]


@dataclass(frozen=True, slots=True)
class RegionalResult:
    """AirNow observations, one per pollutant at the nearest station."""

    observations: List[Dict[str, Any]]


@dataclass(frozen=True, slots=True)
class SyntheticResult:
    lat: float
    lon: float


ProviderResult = Union[PrimaryResult, RegionalResult, SyntheticResult]
