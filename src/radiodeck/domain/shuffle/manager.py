"""
Shuffle mode: random play through a fixed set of stations.

Stations are visited in a random permutation; when it is used up a new one
is drawn. An optional auto-advance countdown tells the caller when to move
on. The countdown is not an OS timer: the caller calls update_timer() on
each UI tick and the remaining time is reduced by the wall-clock delta since
the previous tick, so pausing only has to stop counting.
"""

import random
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from loguru import logger

from radiodeck.core.config import ShuffleConfig
from radiodeck.core.exceptions import NotFoundError, ValidationError
from radiodeck.domain.stations.models import Station

StationFilter = Callable[[Station], bool]


@dataclass(frozen=True)
class ShuffleStatus:
    """Snapshot of a shuffle session for display."""

    keyword: str
    current_index: int
    session_count: int
    history: list[Station] = field(default_factory=list)
    time_remaining: float = 0.0
    timer_paused: bool = False
    auto_advance: bool = False


class ShuffleManager:
    """Randomized station iteration with history and auto-advance."""

    def __init__(
        self,
        config: Optional[ShuffleConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        config = config or ShuffleConfig()
        try:
            config.validate()
        except ValueError as e:
            raise ValidationError(str(e)) from e

        self._config = replace(config)
        self._rng = rng or random.Random()
        self._clock = clock
        self._lock = threading.RLock()

        self._stations: list[Station] = []
        self._order: list[int] = []
        self._cursor = -1  # Before the first element
        self._history: list[Station] = []
        self._keyword = ""
        self._session_count = 0

        self._timer_active = False
        self._timer_paused = False
        self._time_remaining = 0.0
        self._last_tick = 0.0

    @property
    def config(self) -> ShuffleConfig:
        with self._lock:
            return replace(self._config)

    @property
    def keyword(self) -> str:
        with self._lock:
            return self._keyword

    @property
    def session_count(self) -> int:
        with self._lock:
            return self._session_count

    def _permutation(self) -> list[int]:
        order = list(range(len(self._stations)))
        self._rng.shuffle(order)
        return order

    def initialize(self, keyword: str, stations: list[Station]) -> None:
        """Start a new shuffle session over stations.

        Raises:
            ValidationError: If stations is empty
        """
        if not stations:
            raise ValidationError("no stations provided for shuffle")

        with self._lock:
            self._keyword = keyword
            self._stations = list(stations)
            self._order = self._permutation()
            self._cursor = -1
            self._history = []
            self._session_count = 0
            if self._config.auto_advance:
                self._start_timer()
            else:
                self.stop_timer()

        logger.info(f"Shuffle started for '{keyword}' with {len(stations)} stations")

    def _current(self) -> Optional[Station]:
        if 0 <= self._cursor < len(self._order):
            return self._stations[self._order[self._cursor]]
        return None

    def current_station(self) -> Optional[Station]:
        with self._lock:
            return self._current()

    def next(self, station_filter: Optional[StationFilter] = None) -> Station:
        """Advance to the next station the filter accepts.

        Raises:
            NotFoundError: If there are no stations, or the filter rejects
                every one of them
        """
        with self._lock:
            if not self._stations:
                raise NotFoundError("no stations available")

            previous = self._current()
            saved_order, saved_cursor = list(self._order), self._cursor
            rejected: set[int] = set()

            while len(rejected) < len(self._stations):
                self._cursor += 1
                if self._cursor >= len(self._order):
                    self._order = self._permutation()
                    self._cursor = 0

                index = self._order[self._cursor]
                station = self._stations[index]
                if station_filter is None or station_filter(station):
                    break
                rejected.add(index)
            else:
                self._order, self._cursor = saved_order, saved_cursor
                raise NotFoundError("no unblocked stations available")

            if previous is not None:
                self._add_to_history(previous)
            self._session_count += 1
            if self._config.auto_advance:
                self._start_timer()

        logger.debug(f"Shuffle next: {station.trimmed_name}")
        return station

    def previous(self) -> Station:
        """Go back to the most recent history entry and pause auto-advance.

        Raises:
            NotFoundError: If history is disabled or empty
        """
        with self._lock:
            if not self._config.remember_history or not self._history:
                raise NotFoundError("no history available")
            station = self._history.pop()
            self.pause_timer()
            return station

    def _add_to_history(self, station: Station) -> None:
        if not self._config.remember_history:
            return
        self._history.append(station)
        if len(self._history) > self._config.max_history:
            del self._history[: len(self._history) - self._config.max_history]

    def get_history(self) -> list[Station]:
        """History, oldest first."""
        with self._lock:
            return list(self._history)

    # ------------------------------------------------------------------
    # Auto-advance timer
    # ------------------------------------------------------------------

    def _start_timer(self) -> None:
        self._timer_active = True
        self._timer_paused = False
        self._time_remaining = self._config.interval_minutes * 60.0
        self._last_tick = self._clock()

    def update_timer(self) -> bool:
        """Count down by the time since the last tick.

        Returns:
            True once the countdown has run out
        """
        with self._lock:
            if not self._timer_active or self._timer_paused:
                return False
            now = self._clock()
            self._time_remaining -= now - self._last_tick
            self._last_tick = now
            return self._time_remaining <= 0

    def pause_timer(self) -> None:
        with self._lock:
            if self._timer_active:
                self._timer_paused = True

    def resume_timer(self) -> None:
        with self._lock:
            if self._timer_active and self._timer_paused:
                self._timer_paused = False
                self._last_tick = self._clock()

    def toggle_timer(self) -> bool:
        """Pause or resume the countdown. Returns True if now paused."""
        with self._lock:
            if self._timer_paused:
                self.resume_timer()
            else:
                self.pause_timer()
            return self._timer_paused

    def stop_timer(self) -> None:
        with self._lock:
            self._timer_active = False
            self._timer_paused = False

    def is_timer_paused(self) -> bool:
        with self._lock:
            return self._timer_paused

    def is_timer_active(self) -> bool:
        with self._lock:
            return self._timer_active

    def time_remaining(self) -> float:
        """Seconds left on the countdown (0 when no countdown is running)."""
        with self._lock:
            if not self._timer_active:
                return 0.0
            return max(0.0, self._time_remaining)

    def format_time_remaining(self) -> str:
        """Countdown as "M:SS", "Paused", or "" when none is running."""
        with self._lock:
            if not self._timer_active:
                return ""
            if self._timer_paused:
                return "Paused"
            seconds = int(max(0.0, self._time_remaining))
        return f"{seconds // 60}:{seconds % 60:02d}"

    # ------------------------------------------------------------------
    # Config / status
    # ------------------------------------------------------------------

    def update_config(self, config: ShuffleConfig) -> None:
        """Apply new settings to the running session.

        Raises:
            ValidationError: If the config has invalid values
        """
        try:
            config.validate()
        except ValueError as e:
            raise ValidationError(str(e)) from e

        with self._lock:
            old = self._config
            self._config = replace(config)

            if config.auto_advance and not old.auto_advance:
                self._start_timer()
            elif not config.auto_advance and old.auto_advance:
                self.stop_timer()
            elif config.auto_advance and config.interval_minutes != old.interval_minutes:
                self._start_timer()

            if not config.remember_history:
                self._history = []
            elif len(self._history) > config.max_history:
                del self._history[: len(self._history) - config.max_history]

    def get_status(self) -> ShuffleStatus:
        with self._lock:
            return ShuffleStatus(
                keyword=self._keyword,
                current_index=self._cursor,
                session_count=self._session_count,
                history=list(self._history),
                time_remaining=self.time_remaining(),
                timer_paused=self._timer_paused,
                auto_advance=self._config.auto_advance,
            )

    def stop(self) -> None:
        """End the session's auto-advance countdown."""
        self.stop_timer()
