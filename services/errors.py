"""Failure conditions raised inside the acquisition pipeline."""

from __future__ import annotations

from typing import Optional


class ProviderError(Exception):
    """An air quality provider was unavailable or returned an unusable payload."""

    def __init__(self, provider: str, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason
        self.status_code = status_code


class ResolutionError(Exception):
    """A geocoding backend call failed for reasons other than "no match"."""

    def __init__(self, backend: str, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{backend}: {reason}")
        self.backend = backend
        self.reason = reason
        self.status_code = status_code


class LocationNotFound(LookupError):
    """Every geocoding backend was tried and none matched the address."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Location {address!r} could not be resolved.")
        self.address = address


class ReadingStoreError(Exception):
    """The reading store failed to persist a reading."""
