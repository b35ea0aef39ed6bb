"""Map each provider's raw result into a :class:`CanonicalReading`."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from models.provider_results import PrimaryResult, RegionalResult
from models.readings import CanonicalReading, Pollutant, ReadingSource
from services.classifier import category_for, dominant_pollutant_for

# OpenWeather reports a 1-5 index; each step maps to the upper bound of a band.
ORDINAL_TO_AQI: Mapping[int, int] = {1: 50, 2: 100, 3: 150, 4: 200, 5: 300}

_PRIMARY_COMPONENTS: Mapping[Pollutant, str] = {
    Pollutant.pm25: "pm2_5",
    Pollutant.pm10: "pm10",
    Pollutant.o3: "o3",
    Pollutant.no2: "no2",
}

_REGIONAL_PARAMETERS: Mapping[str, Pollutant] = {
    "PM2.5": Pollutant.pm25,
    "PM10": Pollutant.pm10,
    "O3": Pollutant.o3,
    "OZONE": Pollutant.o3,
    "NO2": Pollutant.no2,
}

_MAX_AQI = 500

SYNTHETIC_CONCENTRATIONS: Mapping[Pollutant, float] = {
    Pollutant.pm25: 25.0,
    Pollutant.pm10: 45.0,
    Pollutant.o3: 60.0,
    Pollutant.no2: 30.0,
}
SYNTHETIC_AQI = 100
SYNTHETIC_PAYLOAD = {"note": "Demo data - APIs unavailable"}


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _build_reading(
    *,
    lat: float,
    lon: float,
    captured_at: datetime,
    concentrations: Mapping[Pollutant, float],
    aqi: Optional[int],
    dominant_pollutant: Optional[str],
    source: ReadingSource,
    raw_payload: Any,
) -> CanonicalReading:
    return CanonicalReading(
        lat=lat,
        lon=lon,
        timestamp=captured_at,
        pm25=concentrations.get(Pollutant.pm25),
        pm10=concentrations.get(Pollutant.pm10),
        o3=concentrations.get(Pollutant.o3),
        no2=concentrations.get(Pollutant.no2),
        aqi=aqi,
        category=category_for(aqi) if aqi is not None else None,
        dominant_pollutant=dominant_pollutant,
        source=source,
        raw_payload=raw_payload,
    )


def normalize_primary(
    result: PrimaryResult, lat: float, lon: float, captured_at: datetime
) -> Optional[CanonicalReading]:
    """Normalize an OpenWeather entry; ``None`` when it carries no pollutant data."""
    payload = result.payload
    components = payload.get("components")
    if not isinstance(components, dict):
        return None

    concentrations: Dict[Pollutant, float] = {}
    for pollutant, field_name in _PRIMARY_COMPONENTS.items():
        value = _as_number(components.get(field_name))
        if value is not None:
            concentrations[pollutant] = value
    if not concentrations:
        return None

    main = payload.get("main")
    ordinal = main.get("aqi") if isinstance(main, dict) else None
    aqi = ORDINAL_TO_AQI.get(ordinal) if isinstance(ordinal, int) else None

    return _build_reading(
        lat=lat,
        lon=lon,
        captured_at=captured_at,
        concentrations=concentrations,
        aqi=aqi,
        dominant_pollutant=dominant_pollutant_for(concentrations).value,
        source=ReadingSource.primary,
        raw_payload=payload,
    )


def normalize_regional(
    result: RegionalResult, lat: float, lon: float, captured_at: datetime
) -> Optional[CanonicalReading]:
    """Normalize AirNow observations.

    The overall AQI is the highest per-pollutant AQI reported by the station
    and the pollutant behind it is the dominant one. AirNow's own per-pollutant
    AQI is authoritative here, so the ratio method of the classifier is only
    used when no observation carries a valid AQI.
    """
    concentrations: Dict[Pollutant, float] = {}
    max_aqi: Optional[int] = None
    dominant: Optional[str] = None

    for observation in result.observations:
        if not isinstance(observation, dict):
            continue
        parameter = str(observation.get("ParameterName") or "").strip()
        if not parameter:
            continue
        pollutant = _REGIONAL_PARAMETERS.get(parameter.upper())

        value = _as_number(observation.get("Value"))
        if pollutant is not None and value is not None:
            concentrations.setdefault(pollutant, value)

        aqi = _as_number(observation.get("AQI"))
        # AirNow reports -1 when an AQI could not be computed.
        if aqi is None or aqi < 0:
            continue
        if max_aqi is None or aqi > max_aqi:
            max_aqi = int(aqi)
            dominant = pollutant.value if pollutant is not None else parameter

    if max_aqi is None and not concentrations:
        return None
    if max_aqi is None:
        dominant = dominant_pollutant_for(concentrations).value

    return _build_reading(
        lat=lat,
        lon=lon,
        captured_at=captured_at,
        concentrations=concentrations,
        aqi=min(max_aqi, _MAX_AQI) if max_aqi is not None else None,
        dominant_pollutant=dominant,
        source=ReadingSource.regional,
        raw_payload=list(result.observations),
    )


def synthetic_reading(lat: float, lon: float, captured_at: datetime) -> CanonicalReading:
    """Fixed demo reading used when no real provider produced data."""
    return _build_reading(
        lat=lat,
        lon=lon,
        captured_at=captured_at,
        concentrations=SYNTHETIC_CONCENTRATIONS,
        aqi=SYNTHETIC_AQI,
        dominant_pollutant=dominant_pollutant_for(SYNTHETIC_CONCENTRATIONS).value,
        source=ReadingSource.synthetic,
        raw_payload=dict(SYNTHETIC_PAYLOAD),
    )
