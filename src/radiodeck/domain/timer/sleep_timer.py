"""
Sleep timer: a one-shot countdown that stops playback when it runs out.

Every start() bumps a generation token. A threading.Timer only fires its
callback if its token is still current, so a superseded or cancelled
countdown can never fire even if its thread was already running.
"""

import threading
import time
from typing import Callable, Optional

from loguru import logger


class SleepTimer:
    """Cancelable, extendable countdown that calls on_expire exactly once."""

    def __init__(self, on_expire: Optional[Callable[[], None]] = None):
        self._on_expire = on_expire
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._token = 0
        self._expires_at: Optional[float] = None  # time.monotonic()

    def start(self, seconds: float) -> None:
        """Start (or restart) the countdown. Replaces any running countdown."""
        with self._lock:
            self._start_locked(seconds)
        logger.info(f"Sleep timer set for {seconds:.0f}s")

    def _start_locked(self, seconds: float) -> None:
        self._cancel_locked()
        seconds = max(0.0, float(seconds))
        token = self._token
        self._expires_at = time.monotonic() + seconds
        self._timer = threading.Timer(seconds, self._fire, args=(token,))
        self._timer.daemon = True
        self._timer.start()

    def _cancel_locked(self) -> None:
        self._token += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._expires_at = None

    def _fire(self, token: int) -> None:
        with self._lock:
            if token != self._token or self._expires_at is None:
                return  # Superseded or cancelled
            self._timer = None
            self._expires_at = None
            callback = self._on_expire

        logger.info("Sleep timer expired")
        if callback is not None:
            try:
                callback()
            except Exception:
                logger.exception("Sleep timer callback failed")

    def cancel(self) -> None:
        """Stop the countdown without firing. Safe when idle."""
        with self._lock:
            was_active = self._expires_at is not None
            self._cancel_locked()
        if was_active:
            logger.info("Sleep timer cancelled")

    def extend(self, seconds: float) -> None:
        """Add time to a running countdown. Does nothing when idle."""
        with self._lock:
            if self._expires_at is None:
                return
            remaining = max(0.0, self._expires_at - time.monotonic())
            self._start_locked(remaining + seconds)
        logger.info(f"Sleep timer extended by {seconds:.0f}s")

    def remaining(self) -> tuple[float, bool]:
        """Seconds left and whether a countdown is active."""
        with self._lock:
            if self._expires_at is None:
                return 0.0, False
            return max(0.0, self._expires_at - time.monotonic()), True

    def is_active(self) -> bool:
        with self._lock:
            return self._expires_at is not None
