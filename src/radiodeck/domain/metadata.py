"""
Station play statistics.

Tracks how often and how long each station has been listened to. The player
calls start_play()/stop_play(); only one play is "current" at a time, and its
elapsed time is added to the station's total when it stops.
"""

import time
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from radiodeck.core.store import (
    DEFAULT_SAVE_INTERVAL,
    PersistentStore,
    datetime_from_str,
    datetime_to_str,
)
from radiodeck.domain.stations.models import CachedStation, Station, station_from_cache


@dataclass
class PlayStats:
    """Listening statistics for one station."""

    play_count: int = 0
    first_played: Optional[datetime] = None
    last_played: Optional[datetime] = None
    total_duration_seconds: int = 0


@dataclass(frozen=True)
class StationWithMetadata:
    """Station info combined with its play statistics for display."""

    station: Station
    metadata: PlayStats


class MetadataManager(PersistentStore[PlayStats]):
    """Thread-safe store of play statistics with debounced saves."""

    filename = "station_metadata.json"
    records_key = "stations"

    def __init__(self, data_dir: Path, save_interval: float = DEFAULT_SAVE_INTERVAL):
        self._station_cache: dict[str, CachedStation] = {}
        self._current_play: Optional[str] = None
        self._play_started: Optional[float] = None  # time.monotonic()
        super().__init__(data_dir, save_interval)

    def _record_to_dict(self, record: PlayStats) -> dict:
        return {
            "play_count": record.play_count,
            "first_played": datetime_to_str(record.first_played),
            "last_played": datetime_to_str(record.last_played),
            "total_duration_seconds": record.total_duration_seconds,
        }

    def _record_from_dict(self, data: dict) -> PlayStats:
        return PlayStats(
            play_count=int(data.get("play_count", 0)),
            first_played=datetime_from_str(data.get("first_played")),
            last_played=datetime_from_str(data.get("last_played")),
            total_duration_seconds=int(data.get("total_duration_seconds", 0)),
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
        self._current_play = None
        self._play_started = None

    @property
    def current_play(self) -> Optional[str]:
        """UUID of the station whose play is being timed, if any."""
        with self._lock:
            return self._current_play

    def start_play(self, station: Station) -> None:
        """Record that a station started playing.

        Starting the station that is already current is a no-op. Starting a
        different one closes the previous play first.
        """
        if station is None:
            return

        with self._lock:
            if self._current_play == station.station_uuid:
                return

            with self._mutate():
                if self._current_play is not None:
                    self._stop_current()

                now = datetime.now()
                stats = self._records.get(station.station_uuid)
                if stats is None:
                    stats = PlayStats(first_played=now)
                    self._records[station.station_uuid] = stats
                stats.play_count += 1
                stats.last_played = now
                self._station_cache[station.station_uuid] = CachedStation.from_station(
                    station
                )
                self._current_play = station.station_uuid
                self._play_started = time.monotonic()

        logger.debug(f"Play started: {station.station_uuid}")

    def stop_play(self, station_uuid: str) -> None:
        """Record that a station stopped. No-op unless it is the current play."""
        with self._lock:
            if self._current_play is None or self._current_play != station_uuid:
                return
            with self._mutate():
                self._stop_current()

        logger.debug(f"Play stopped: {station_uuid}")

    def _stop_current(self) -> None:
        # Caller holds the lock
        if self._play_started is not None:
            elapsed = int(time.monotonic() - self._play_started)
            stats = self._records.get(self._current_play)
            if stats is not None and elapsed > 0:
                stats.total_duration_seconds += elapsed
        self._current_play = None
        self._play_started = None

    def get_metadata(self, station_uuid: str) -> Optional[PlayStats]:
        """Copy of a station's statistics, or None if never played."""
        with self._lock:
            stats = self._records.get(station_uuid)
            return replace(stats) if stats else None

    def get_cached_station(self, station_uuid: str) -> Optional[CachedStation]:
        with self._lock:
            return self._station_cache.get(station_uuid)

    def _sorted(
        self, sort_key: Callable[[PlayStats], tuple], limit: int = 0
    ) -> list[StationWithMetadata]:
        with self._lock:
            items = sorted(
                self._records.items(), key=lambda item: (*sort_key(item[1]), item[0])
            )
            if limit > 0:
                items = items[:limit]
            return [
                StationWithMetadata(
                    station=station_from_cache(uuid, self._station_cache),
                    metadata=replace(stats),
                )
                for uuid, stats in items
            ]

    def get_top_played(self, limit: int = 0) -> list[StationWithMetadata]:
        """Stations by play count, most played first. limit=0 means no limit."""
        return self._sorted(lambda s: (-s.play_count,), limit)

    def get_recently_played(self, limit: int = 0) -> list[StationWithMetadata]:
        """Stations by last play, most recent first."""
        return self._sorted(
            lambda s: (
                s.last_played is None,
                -s.last_played.timestamp() if s.last_played else 0.0,
            ),
            limit,
        )

    def get_first_played(self, limit: int = 0) -> list[StationWithMetadata]:
        """Stations by first play, oldest first. Never-played entries go last."""
        return self._sorted(
            lambda s: (
                s.first_played is None,
                s.first_played.timestamp() if s.first_played else 0.0,
            ),
            limit,
        )

    def get_all_station_uuids(self) -> list[str]:
        with self._lock:
            return sorted(self._records)

    def total_stations(self) -> int:
        return len(self)

    def clear_all(self) -> None:
        """Remove all statistics and forget the current play."""
        with self._mutate():
            self._records.clear()
            self._station_cache.clear()
            self._current_play = None
            self._play_started = None

    def close(self) -> None:
        """Stop the current play (recording its duration), then flush and close."""
        with self._lock:
            if self._current_play is not None:
                with self._mutate():
                    self._stop_current()
        super().close()
