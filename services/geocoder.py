"""Address resolution across an ordered list of geocoding backends."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from models.readings import GeoLocation
from services.errors import LocationNotFound, ResolutionError

logger = logging.getLogger(__name__)


class GeocodingBackend(Protocol):
    name: str

    @property
    def configured(self) -> bool: ...

    def lookup(self, address: str) -> Optional[GeoLocation]: ...


class GeocodingResolver:
    """Tries each backend in order and returns the first match."""

    def __init__(self, backends: Sequence[GeocodingBackend]) -> None:
        self.backends = list(backends)

    def resolve(self, address: str) -> GeoLocation:
        query = address.strip()
        if not query:
            raise ValueError("Address must not be empty.")

        for backend in self.backends:
            if not backend.configured:
                logger.debug(
                    "Skipping unconfigured geocoding backend",
                    extra={"backend": backend.name},
                )
                continue
            try:
                location = backend.lookup(query)
            except ResolutionError as exc:
                logger.warning(
                    "Geocoding backend failed, trying next",
                    extra={
                        "backend": backend.name,
                        "reason": exc.reason,
                        "status_code": exc.status_code,
                    },
                )
                continue
            if location is None:
                logger.info("Geocoding backend found no match", extra={"backend": backend.name})
                continue
            logger.info(
                "Resolved address",
                extra={"backend": backend.name, "lat": location.lat, "lon": location.lon},
            )
            return location

        raise LocationNotFound(query)
