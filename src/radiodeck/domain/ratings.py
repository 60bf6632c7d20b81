"""
Station star ratings.

Ratings are 1-5 stars keyed by station UUID. Station display fields are
cached alongside so "top rated" lists render without a directory lookup.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from radiodeck.core.exceptions import ValidationError
from radiodeck.core.store import (
    DEFAULT_SAVE_INTERVAL,
    PersistentStore,
    datetime_from_str,
    datetime_to_str,
)
from radiodeck.domain.stations.models import CachedStation, Station, station_from_cache

MIN_RATING = 1
MAX_RATING = 5


@dataclass
class Rating:
    """A user's rating for one station."""

    rating: int
    rated_at: datetime  # First rated
    updated_at: datetime  # Last changed


@dataclass(frozen=True)
class StationWithRating:
    """Station info combined with its rating for display."""

    station: Station
    rating: Rating


class RatingsManager(PersistentStore[Rating]):
    """Thread-safe store of station ratings with debounced saves."""

    filename = "station_ratings.json"
    records_key = "ratings"

    def __init__(self, data_dir: Path, save_interval: float = DEFAULT_SAVE_INTERVAL):
        self._station_cache: dict[str, CachedStation] = {}
        super().__init__(data_dir, save_interval)

    def _record_to_dict(self, record: Rating) -> dict:
        return {
            "rating": record.rating,
            "rated_at": datetime_to_str(record.rated_at),
            "updated_at": datetime_to_str(record.updated_at),
        }

    def _record_from_dict(self, data: dict) -> Rating:
        rated_at = datetime.fromisoformat(data["rated_at"])
        return Rating(
            rating=int(data["rating"]),
            rated_at=rated_at,
            updated_at=datetime_from_str(data.get("updated_at")) or rated_at,
        )

    def _dump_extra(self) -> dict:
        return {
            "station_cache": {
                uuid: cached.to_dict() for uuid, cached in self._station_cache.items()
            }
        }

    def _load_extra(self, document: dict) -> None:
        self._station_cache = {
            uuid: CachedStation.from_dict(data)
            for uuid, data in (document.get("station_cache") or {}).items()
        }

    def _reset_extra(self) -> None:
        self._station_cache = {}

    def set_rating(self, station: Station, rating: int) -> None:
        """Rate a station 1-5 stars and cache its display fields.

        Raises:
            ValidationError: If station is None or rating is out of range
        """
        if station is None:
            raise ValidationError("station cannot be None")
        if not isinstance(rating, int) or isinstance(rating, bool):
            raise ValidationError(f"rating must be an integer, got {rating!r}")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(
                f"rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}"
            )

        now = datetime.now()
        with self._mutate():
            existing = self._records.get(station.station_uuid)
            if existing is None:
                self._records[station.station_uuid] = Rating(
                    rating=rating, rated_at=now, updated_at=now
                )
            else:
                existing.rating = rating
                existing.updated_at = now
            self._station_cache[station.station_uuid] = CachedStation.from_station(
                station
            )

        logger.debug(f"Rated {station.station_uuid}: {rating}")

    def remove_rating(self, station_uuid: str) -> None:
        """Remove a station's rating. Removing an absent rating is a no-op."""
        with self._lock:
            if station_uuid not in self._records:
                return
            with self._mutate():
                del self._records[station_uuid]
                self._station_cache.pop(station_uuid, None)

    def get_rating(self, station_uuid: str) -> Optional[Rating]:
        """Return a copy of a station's rating, or None if unrated."""
        with self._lock:
            rating = self._records.get(station_uuid)
            return replace(rating) if rating else None

    def _sorted(
        self, sort_key: Callable[[str, Rating], tuple], limit: int = 0
    ) -> list[StationWithRating]:
        with self._lock:
            items = sorted(
                self._records.items(), key=lambda item: (*sort_key(*item), item[0])
            )
            if limit > 0:
                items = items[:limit]
            return [
                StationWithRating(
                    station=station_from_cache(uuid, self._station_cache),
                    rating=replace(rating),
                )
                for uuid, rating in items
            ]

    def get_top_rated(self, limit: int = 0) -> list[StationWithRating]:
        """Stations sorted by rating (highest first). limit=0 means no limit."""
        return self._sorted(lambda uuid, r: (-r.rating,), limit)

    def get_by_min_rating(self, min_rating: int) -> list[StationWithRating]:
        """Stations rated at least min_rating, highest first."""
        return [
            entry
            for entry in self.get_top_rated()
            if entry.rating.rating >= min_rating
        ]

    def get_recently_rated(self, limit: int = 0) -> list[StationWithRating]:
        """Stations sorted by when they were last rated (most recent first)."""
        return self._sorted(lambda uuid, r: (-r.updated_at.timestamp(),), limit)

    def get_all_rated(self) -> list[StationWithRating]:
        """All rated stations in UUID order."""
        return self._sorted(lambda uuid, r: ())

    def total_rated(self) -> int:
        return len(self)

    def clear_all(self) -> None:
        """Remove every rating."""
        with self._mutate():
            self._records.clear()
            self._station_cache.clear()
