from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_OPENWEATHER_KEY_ENV = "OPENWEATHER_API_KEY"
_AIRNOW_KEY_ENV = "AIRNOW_API_KEY"
_GEOCODE_KEY_ENV = "GEOCODE_API_KEY"
_STORE_PATH_ENV = "READING_STORE_PATH"
_TIMEOUT_ENV = "UPSTREAM_TIMEOUT_SECONDS"
_CACHE_AGE_ENV = "CACHE_MAX_AGE_MINUTES"
_DIRECT_CACHE_AGE_ENV = "DIRECT_CACHE_MAX_AGE_MINUTES"
_USER_AGENT_ENV = "GEOCODE_USER_AGENT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

# Values shipped in example env files; treated as "not configured".
_PLACEHOLDER_SECRETS = frozenset(
    {
        "your_openweather_key",
        "your_openweather_api_key_here",
        "your_airnow_key",
        "your_geocode_key",
    }
)


@dataclass(frozen=True)
class Settings:
    openweather_api_key: Optional[str]
    airnow_api_key: Optional[str]
    geocode_api_key: Optional[str]
    reading_store_path: Optional[str]
    upstream_timeout_seconds: float
    cache_max_age_minutes: int
    direct_cache_max_age_minutes: int
    geocode_user_agent: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_secret_env(name: str) -> Optional[str]:
    candidate = _read_optional_env(name, None)
    if candidate is None or candidate in _PLACEHOLDER_SECRETS:
        return None
    return candidate


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        openweather_api_key=_read_secret_env(_OPENWEATHER_KEY_ENV),
        airnow_api_key=_read_secret_env(_AIRNOW_KEY_ENV),
        geocode_api_key=_read_secret_env(_GEOCODE_KEY_ENV),
        reading_store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/readings.json"),
        upstream_timeout_seconds=_read_positive_float(_TIMEOUT_ENV, 8.0),
        cache_max_age_minutes=_read_positive_int(_CACHE_AGE_ENV, 30),
        direct_cache_max_age_minutes=_read_positive_int(_DIRECT_CACHE_AGE_ENV, 10),
        geocode_user_agent=_read_str_env(_USER_AGENT_ENV, "AirQualityGateway/0.1"),
        log_level=_read_log_level("INFO"),
    )
