"""Deterministic AQI category and dominant pollutant derivation."""

from __future__ import annotations

from typing import Mapping, Optional

from models.readings import Category, Pollutant

REFERENCE_THRESHOLDS: Mapping[Pollutant, float] = {
    Pollutant.pm25: 12.0,
    Pollutant.pm10: 54.0,
    Pollutant.o3: 70.0,
    Pollutant.no2: 100.0,
}


def category_for(aqi: int) -> Category:
    return Category.for_aqi(aqi)


def dominant_pollutant_for(concentrations: Mapping[Pollutant, Optional[float]]) -> Pollutant:
    """Return the pollutant with the highest value-to-reference ratio.

    Pollutants missing from the mapping (or mapped to ``None``) are ignored
    rather than counted as zero. Ties go to the pollutant declared first in
    :class:`Pollutant`.

    Raises:
        ValueError: if no concentration is present.
    """
    dominant: Optional[Pollutant] = None
    best_ratio = 0.0
    for pollutant in Pollutant:
        value = concentrations.get(pollutant)
        if value is None:
            continue
        ratio = value / REFERENCE_THRESHOLDS[pollutant]
        if dominant is None or ratio > best_ratio:
            dominant = pollutant
            best_ratio = ratio
    if dominant is None:
        raise ValueError("At least one pollutant concentration is required.")
    return dominant
