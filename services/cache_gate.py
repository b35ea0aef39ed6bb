"""Freshness check that short-circuits the provider chain."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from datastore.reading_store import ReadingStore
from models.readings import CanonicalReading

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_MINUTES = 30


class FreshnessCacheGate:
    """Answers whether a recent enough reading already exists for a key.

    Keys match on exact coordinates and user id. Two concurrent misses for
    the same key both go upstream and both persist; duplicates are harmless
    and bounded by the freshness window, so no locking is done here.

    The window is measured against ``clock``, which must be the same clock
    that stamps the readings being stored.
    """

    def __init__(
        self,
        store: ReadingStore,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self._clock = clock

    def lookup(
        self,
        user_id: str,
        lat: float,
        lon: float,
        max_age_minutes: float = DEFAULT_MAX_AGE_MINUTES,
    ) -> Optional[CanonicalReading]:
        if max_age_minutes <= 0:
            raise ValueError("max_age_minutes must be greater than zero.")
        reading = self.store.find_recent(
            user_id, lat, lon, max_age_minutes, now=self._clock()
        )
        if reading is not None:
            logger.debug(
                "Cache hit",
                extra={"user_id": user_id, "lat": lat, "lon": lon, "reading_id": reading.id},
            )
        return reading
