"""Stations listened to while a sleep timer was running."""

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from radiodeck.domain.stations.models import Station


@dataclass
class SessionEntry:
    """One station played during a sleep session."""

    station: Station
    started_at: datetime
    duration: Optional[float] = None  # Seconds; set when the entry is closed


class SleepSession:
    """Thread-safe log of the stations played since the timer was set."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: list[SessionEntry] = []
        self.started_at = datetime.now()

    def _close_last(self, now: datetime) -> None:
        if self._entries and self._entries[-1].duration is None:
            last = self._entries[-1]
            last.duration = (now - last.started_at).total_seconds()

    def record_station(self, station: Station) -> None:
        """Close the previous entry and open one for this station."""
        with self._lock:
            now = datetime.now()
            self._close_last(now)
            self._entries.append(SessionEntry(station=station, started_at=now))

    def record_stop(self) -> None:
        """Close the last entry when playback stops."""
        with self._lock:
            self._close_last(datetime.now())

    def entries(self) -> list[SessionEntry]:
        with self._lock:
            return [replace(entry) for entry in self._entries]

    def total(self) -> float:
        """Wall-clock seconds since the session started."""
        return (datetime.now() - self.started_at).total_seconds()
