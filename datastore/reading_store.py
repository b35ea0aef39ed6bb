from __future__ import annotations
import json
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional
from uuid import uuid4

from models.readings import CacheKey, CanonicalReading
from services.errors import ReadingStoreError
from settings import get_settings


class ReadingStore:
    """JSON-file backed stand-in for the persistent reading store."""

    def __init__(self, name: str = "air_reads", persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, CanonicalReading] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert(self, reading: CanonicalReading) -> CanonicalReading:
        """Store a copy of ``reading`` under a fresh identifier and return it."""
        stored = reading.model_copy(deep=True, update={"id": str(uuid4())})
        with self._lock:
            self._items[stored.id] = stored
            try:
                self._persist()
            except OSError as exc:
                self._items.pop(stored.id, None)
                raise ReadingStoreError(f"Failed to persist reading: {exc}") from exc
        return stored.model_copy(deep=True)

    def get(self, reading_id: str) -> Optional[CanonicalReading]:
        with self._lock:
            item = self._items.get(reading_id)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def find_recent(
        self,
        user_id: str,
        lat: float,
        lon: float,
        max_age_minutes: float,
        now: Optional[datetime] = None,
    ) -> Optional[CanonicalReading]:
        """Newest reading for the exact key captured within ``max_age_minutes``."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(minutes=max_age_minutes)
        matches = self._matching(CacheKey(user_id, lat, lon), cutoff)
        if not matches:
            return None
        return max(matches, key=lambda item: item.timestamp)

    def list_for_timeline(
        self,
        user_id: str,
        lat: float,
        lon: float,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> list[CanonicalReading]:
        """Readings for the exact key within the last ``days`` days, oldest first."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        matches = self._matching(CacheKey(user_id, lat, lon), cutoff)
        return sorted(matches, key=lambda item: item.timestamp)

    def scan(self) -> list[CanonicalReading]:
        """Return deep copies of all stored readings."""

        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def _matching(self, key: CacheKey, cutoff: datetime) -> list[CanonicalReading]:
        with self._lock:
            return [
                item.model_copy(deep=True)
                for item in self._items.values()
                if key.matches(item) and item.timestamp > cutoff
            ]

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            reading_id: item.model_dump(mode="json") for reading_id, item in self._items.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for reading_id, payload in data.items():
            self._items[reading_id] = CanonicalReading.model_validate(payload)


@lru_cache
def build_default_store(path: Optional[str] = None) -> ReadingStore:
    settings = get_settings()
    store_path = settings.reading_store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(persistence_path=persistence)
