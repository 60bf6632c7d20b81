"""
mpv-backed player for internet radio streams.

One PlayerController owns at most one mpv process at a time. play() spawns
mpv with a fresh IPC endpoint and starts three daemon threads for the
session: one connects to the IPC socket (mpv creates it a moment after
starting), one watches for the process exiting on its own, and one polls
the stream's track title.

Background threads hold a reference to the session they were started for
and re-check ``self._session is session`` under the lock before touching
shared state, so a thread from a replaced session can never adopt a socket
or clear state belonging to the next one.
"""

import shutil
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from radiodeck.core.config import ConnectionConfig, PlayerConfig
from radiodeck.core.exceptions import (
    IPCError,
    NotPlayingError,
    ProcessError,
    ValidationError,
)
from radiodeck.domain.metadata import MetadataManager
from radiodeck.domain.stations.models import Station

from .connection import build_mpv_command
from .ipc import IPCEndpoint, MPVConnection, allocate_endpoint

CONNECT_ATTEMPTS = 10
CONNECT_RETRY_INTERVAL = 0.1  # seconds
EXIT_POLL_INTERVAL = 0.1  # seconds

MAX_TRACK_HISTORY = 5
MIN_TRACK_TITLE_LENGTH = 3  # Shorter titles are usually the station name


def _clamp_volume(volume: int) -> int:
    return max(0, min(100, int(volume)))


@dataclass(eq=False)
class _Session:
    """Everything that belongs to one spawned mpv process."""

    station: Station
    process: subprocess.Popen
    endpoint: IPCEndpoint
    stop_event: threading.Event = field(default_factory=threading.Event)
    conn: Optional[MPVConnection] = None


class PlayerController:
    """Controls mpv playback of a single station at a time.

    Volume and mute state belong to the controller and survive stop();
    pause state and track history belong to the session.
    """

    def __init__(
        self,
        config: Optional[PlayerConfig] = None,
        connection: Optional[ConnectionConfig] = None,
        metadata_manager: Optional[MetadataManager] = None,
    ):
        self.config = config or PlayerConfig()
        self.connection = (connection or ConnectionConfig()).normalized()

        self._lock = threading.RLock()
        self._session: Optional[_Session] = None
        self._metadata = metadata_manager

        self._volume = _clamp_volume(self.config.volume)
        self._muted = self._volume == 0
        self._last_volume = self._volume
        self._paused = False

        self._track_lock = threading.Lock()
        self._current_track = ""
        self._track_history: list[str] = []

    def set_metadata_manager(self, manager: Optional[MetadataManager]) -> None:
        """Attach the store that records play statistics."""
        with self._lock:
            self._metadata = manager

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def play(self, station: Station) -> None:
        """Start playing a station, replacing whatever is playing.

        Raises:
            ValidationError: If station is None or has no stream URL
            ProcessError: If mpv cannot be found or started
        """
        if station is None:
            raise ValidationError("station cannot be None")
        if not station.url:
            raise ValidationError(f"station {station.station_uuid} has no stream URL")

        try:
            self.stop()
        except ProcessError as e:
            # Old session is already detached
            logger.warning(f"Previous mpv did not stop cleanly: {e}")

        mpv_binary = shutil.which(self.config.mpv_path)
        if mpv_binary is None:
            raise ProcessError(f"mpv not found: {self.config.mpv_path}")

        with self._lock:
            # Another thread may have started playback since stop()
            replaced = self._detach()
            if replaced is not None:
                self._release(replaced)

            if station.volume is not None:
                volume = _clamp_volume(station.volume)
            else:
                volume = self._volume
            self._volume = volume
            self._muted = volume == 0
            if volume > 0:
                self._last_volume = volume

            endpoint = allocate_endpoint(self.config.socket_dir)
            cmd = build_mpv_command(
                mpv_binary, station.url, volume, endpoint.address, self.connection
            )

            logger.info(f"Starting mpv for {station.trimmed_name} ({station.station_uuid})")
            logger.debug(f"mpv command: {cmd}")

            try:
                process = subprocess.Popen(
                    cmd,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    stdin=subprocess.DEVNULL,
                )
            except (OSError, subprocess.SubprocessError) as e:
                endpoint.remove()
                raise ProcessError(f"Failed to start mpv: {e}") from e

            session = _Session(station=station, process=process, endpoint=endpoint)
            self._session = session
            self._paused = False

            if self._metadata is not None:
                try:
                    self._metadata.start_play(station)
                except Exception:
                    logger.exception(
                        f"Failed to record play start for {station.station_uuid}"
                    )

            for target, name in (
                (self._connect_loop, "mpv-connect"),
                (self._monitor_exit, "mpv-monitor"),
                (self._poll_metadata, "mpv-metadata"),
            ):
                threading.Thread(
                    target=target, args=(session,), name=name, daemon=True
                ).start()

        if replaced is not None:
            self._terminate(replaced.process)

    def stop(self) -> None:
        """Stop playback. Does nothing when idle.

        Raises:
            ProcessError: If mpv could not be killed
        """
        with self._lock:
            session = self._detach()
        if session is None:
            return

        self._release(session)
        self._terminate(session.process)
        logger.info(f"Stopped {session.station.trimmed_name}")

    def _detach(self) -> Optional[_Session]:
        # Caller holds the lock
        session = self._session
        if session is None:
            return None
        self._session = None
        self._paused = False
        session.stop_event.set()
        with self._track_lock:
            self._current_track = ""
            self._track_history = []
        return session

    def _release(self, session: _Session) -> None:
        """Record the play stop and free the session's IPC resources."""
        metadata = self._metadata
        if metadata is not None:
            try:
                metadata.stop_play(session.station.station_uuid)
            except Exception:
                logger.exception(
                    f"Failed to record play stop for {session.station.station_uuid}"
                )

        with self._lock:
            conn, session.conn = session.conn, None
        if conn is not None:
            conn.close()
        session.endpoint.remove()

    def _terminate(self, process: subprocess.Popen) -> None:
        """SIGTERM, wait up to stop_timeout, then SIGKILL."""
        if process.poll() is not None:
            return

        try:
            process.terminate()
            process.wait(timeout=self.config.stop_timeout)
            return
        except subprocess.TimeoutExpired:
            logger.warning(
                f"mpv (pid {process.pid}) ignored SIGTERM for "
                f"{self.config.stop_timeout}s, killing"
            )
        except ProcessLookupError:
            return  # Exited between poll() and terminate()

        try:
            process.kill()
            process.wait(timeout=self.config.stop_timeout)
        except ProcessLookupError:
            pass
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ProcessError(f"Failed to stop mpv (pid {process.pid}): {e}") from e

    # ------------------------------------------------------------------
    # Background threads
    # ------------------------------------------------------------------

    def _connect_loop(self, session: _Session) -> None:
        for _ in range(CONNECT_ATTEMPTS):
            if session.stop_event.wait(CONNECT_RETRY_INTERVAL):
                return
            if self._try_connect(session):
                return
        logger.warning(
            f"Could not connect to mpv IPC at {session.endpoint.address}; "
            "playing without remote control"
        )

    def _try_connect(self, session: _Session) -> bool:
        """Connect once. Returns False only if a retry makes sense."""
        try:
            conn = session.endpoint.connect()
        except IPCError as e:
            logger.debug(f"IPC connect attempt failed: {e}")
            return False

        with self._lock:
            if self._session is not session or session.conn is not None:
                # Replaced, stopped or already connected
                conn.close()
                return True
            session.conn = conn
            volume = 0 if self._muted else self._volume
            try:
                conn.set_property("volume", volume)
            except IPCError as e:
                logger.debug(f"Could not push initial volume: {e}")

        logger.debug(f"Connected to mpv IPC at {session.endpoint.address}")
        return True

    def _monitor_exit(self, session: _Session) -> None:
        while True:
            returncode = session.process.poll()
            if returncode is not None:
                break
            if session.stop_event.wait(EXIT_POLL_INTERVAL):
                return

        with self._lock:
            if self._session is not session:
                return
            self._detach()

        logger.warning(
            f"mpv exited on its own (code {returncode}) while playing "
            f"{session.station.trimmed_name}"
        )
        self._release(session)

    def _poll_metadata(self, session: _Session) -> None:
        while not session.stop_event.wait(self.config.metadata_interval):
            with self._lock:
                if self._session is not session:
                    return
                conn = session.conn
                if conn is not None and conn.closed:
                    # Dropped after a failed write
                    session.conn = conn = None

            if conn is None:
                self._try_connect(session)
                continue

            try:
                title = conn.get_property("media-title")
            except IPCError as e:
                logger.debug(f"Track title poll failed: {e}")
                continue

            if isinstance(title, str) and title:
                self._add_to_track_history(title)

    def _add_to_track_history(self, title: str) -> None:
        with self._track_lock:
            if title == self._current_track:
                return
            if len(title) < MIN_TRACK_TITLE_LENGTH:
                return
            self._current_track = title
            self._track_history.insert(0, title)
            del self._track_history[MAX_TRACK_HISTORY:]
        logger.debug(f"Now playing track: {title}")

    # ------------------------------------------------------------------
    # IPC helpers
    # ------------------------------------------------------------------

    def _send(self, command: list) -> None:
        # Caller holds the lock
        session = self._session
        if session is None or session.conn is None:
            return
        try:
            session.conn.send(command)
        except IPCError as e:
            logger.warning(f"mpv command {command} failed: {e}")

    def _query(self, property_name: str):
        with self._lock:
            if self._session is None:
                raise NotPlayingError()
            conn = self._session.conn
        if conn is None:
            raise IPCError("not connected to mpv")
        return conn.get_property(property_name)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def toggle_pause(self) -> None:
        """Pause or resume playback.

        Raises:
            NotPlayingError: If nothing is playing
            IPCError: If mpv is not connected or the command fails
        """
        with self._lock:
            session = self._session
            if session is None:
                raise NotPlayingError()
            if session.conn is None:
                raise IPCError("not connected to mpv")
            session.conn.send(["cycle", "pause"])
            self._paused = not self._paused

    def set_volume(self, volume: int) -> None:
        """Set the volume (clamped to 0-100). 0 means muted."""
        with self._lock:
            volume = _clamp_volume(volume)
            if volume > 0:
                self._last_volume = volume
            self._volume = volume
            self._muted = volume == 0
            self._send(["set_property", "volume", volume])

    def increase_volume(self, amount: int) -> int:
        """Raise the volume by amount and return the new volume."""
        with self._lock:
            self.set_volume(self._volume + amount)
            return self._volume

    def decrease_volume(self, amount: int) -> int:
        """Lower the volume by amount and return the new volume."""
        with self._lock:
            self.set_volume(self._volume - amount)
            return self._volume

    def toggle_mute(self) -> tuple[bool, int]:
        """Mute, or restore the last non-zero volume (100 if there is none).

        Returns:
            (muted, volume) after the toggle
        """
        with self._lock:
            if self._muted:
                self._volume = self._last_volume or 100
                self._muted = False
            else:
                if self._volume > 0:
                    self._last_volume = self._volume
                self._volume = 0
                self._muted = True
            self._send(["set_property", "volume", self._volume])
            return self._muted, self._volume

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_audio_bitrate(self) -> int:
        """Current audio bitrate in bits/s, or 0 if mpv doesn't know yet.

        Raises:
            NotPlayingError: If nothing is playing
            IPCError: If not connected, on timeout, or on an mpv error
        """
        value = self._query("audio-bitrate")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
        return 0

    def get_current_track(self) -> str:
        """Current track title from the stream metadata ("" if none).

        Raises:
            NotPlayingError: If nothing is playing
            IPCError: If not connected, on timeout, or on an mpv error
        """
        value = self._query("media-title")
        return value if isinstance(value, str) else ""

    def get_cached_track(self) -> str:
        """Last polled track title. Never talks to mpv."""
        with self._track_lock:
            return self._current_track

    def get_track_history(self) -> list[str]:
        """Recent track titles, newest first. Never talks to mpv."""
        with self._track_lock:
            return list(self._track_history)

    def is_playing(self) -> bool:
        with self._lock:
            return self._session is not None

    def is_paused(self) -> bool:
        with self._lock:
            return self._paused

    def is_connected(self) -> bool:
        with self._lock:
            return self._session is not None and self._session.conn is not None

    def get_current_station(self) -> Optional[Station]:
        with self._lock:
            return self._session.station if self._session else None

    def get_volume(self) -> int:
        with self._lock:
            return self._volume

    def is_muted(self) -> bool:
        with self._lock:
            return self._muted
