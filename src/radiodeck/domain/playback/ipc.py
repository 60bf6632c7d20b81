"""
mpv JSON IPC: endpoint allocation and a line-delimited JSON connection.

Each playback session gets its own endpoint so a slow-dying decoder from a
previous session can never answer the next one's commands. On platforms
without Unix domain sockets a free loopback TCP port is used instead.
"""

import itertools
import json
import os
import secrets
import socket
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from radiodeck.core.exceptions import IPCError

# Deadlines for a single IPC operation (seconds)
WRITE_TIMEOUT = 0.25
QUERY_TIMEOUT = 0.5

HAS_UNIX_SOCKETS = hasattr(socket, "AF_UNIX")


@dataclass(frozen=True)
class IPCEndpoint:
    """Where the decoder listens for IPC connections."""

    address: str  # Socket path, or "127.0.0.1:<port>"
    is_unix: bool = True

    def connect(self, timeout: float = QUERY_TIMEOUT) -> "MPVConnection":
        """Open a connection to the decoder.

        Raises:
            IPCError: If nothing is listening yet
        """
        try:
            if self.is_unix:
                sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
                target: Any = self.address
            else:
                host, port = self.address.rsplit(":", 1)
                sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                target = (host, int(port))
        except OSError as e:
            raise IPCError(f"Cannot create socket for {self.address}: {e}") from e

        try:
            sock.settimeout(timeout)
            sock.connect(target)
        except OSError as e:
            sock.close()
            raise IPCError(f"Cannot connect to {self.address}: {e}") from e

        return MPVConnection(sock, self.address)

    def remove(self) -> None:
        """Delete the socket file, if this endpoint has one."""
        if not self.is_unix:
            return
        try:
            os.unlink(self.address)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove IPC socket {self.address}: {e}")


def allocate_endpoint(socket_dir: Optional[str] = None) -> IPCEndpoint:
    """Pick a fresh, unused IPC endpoint for one playback session."""
    if HAS_UNIX_SOCKETS:
        directory = Path(socket_dir) if socket_dir else Path(tempfile.gettempdir())
        token = secrets.token_hex(4)
        path = directory / f"radiodeck-mpv-{os.getpid()}-{token}.sock"
        endpoint = IPCEndpoint(address=str(path), is_unix=True)
        endpoint.remove()
        return endpoint

    # Ask the OS for a free port; the decoder binds it right after
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    return IPCEndpoint(address=f"127.0.0.1:{port}", is_unix=False)


class MPVConnection:
    """A connected mpv IPC socket.

    Writes are fire-and-forget with a short deadline. Queries carry a
    request_id and skip every line that is not their reply (events, and
    replies to earlier writes). Socket I/O is serialized by an internal
    lock so callers don't need to hold any other lock while talking to mpv.
    """

    def __init__(self, sock: socket.socket, address: str = ""):
        self._sock = sock
        self.address = address
        self._io_lock = threading.Lock()
        self._buffer = b""
        self._request_ids = itertools.count(1)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _write(self, payload: dict, timeout: float) -> None:
        # Caller holds _io_lock
        if self._closed:
            raise IPCError("IPC connection is closed")
        data = (json.dumps(payload) + "\n").encode("utf-8")
        try:
            self._sock.settimeout(timeout)
            self._sock.sendall(data)
        except socket.timeout as e:
            # A partial line would mis-frame every later command
            self._close_socket()
            raise IPCError(f"IPC write timed out after {timeout}s") from e
        except OSError as e:
            self._close_socket()
            raise IPCError(f"IPC write failed: {e}") from e

    def _read_line(self, deadline: float) -> bytes:
        # Caller holds _io_lock
        while b"\n" not in self._buffer:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise IPCError("IPC query timed out")
            try:
                self._sock.settimeout(remaining)
                chunk = self._sock.recv(4096)
            except socket.timeout as e:
                raise IPCError("IPC query timed out") from e
            except OSError as e:
                raise IPCError(f"IPC read failed: {e}") from e
            if not chunk:
                raise IPCError("IPC connection closed by peer")
            self._buffer += chunk

        line, self._buffer = self._buffer.split(b"\n", 1)
        return line

    def send(self, command: list, timeout: float = WRITE_TIMEOUT) -> None:
        """Send a command without waiting for its reply.

        Raises:
            IPCError: If the write fails or exceeds the deadline
        """
        with self._io_lock:
            self._write({"command": command}, timeout)
        logger.debug(f"IPC -> {command}")

    def request(self, command: list, timeout: float = QUERY_TIMEOUT) -> Any:
        """Send a command and return the ``data`` field of its reply.

        Raises:
            IPCError: On timeout, closed connection, malformed reply, or an
                error status other than "success"
        """
        deadline = time.monotonic() + timeout
        with self._io_lock:
            request_id = next(self._request_ids)
            self._write({"command": command, "request_id": request_id}, timeout)

            while True:
                line = self._read_line(deadline).strip()
                if not line:
                    continue
                try:
                    reply = json.loads(line)
                except json.JSONDecodeError as e:
                    raise IPCError(f"Invalid IPC reply: {line[:80]!r}") from e
                if not isinstance(reply, dict) or "event" in reply:
                    continue
                if reply.get("request_id") != request_id:
                    continue
                break

        status = reply.get("error")
        if status != "success":
            raise IPCError(f"mpv command {command[0]!r} failed: {status}")
        return reply.get("data")

    def get_property(self, name: str, timeout: float = QUERY_TIMEOUT) -> Any:
        return self.request(["get_property", name], timeout)

    def set_property(self, name: str, value: Any, timeout: float = WRITE_TIMEOUT) -> None:
        self.send(["set_property", name, value], timeout)

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        self._close_socket()

    def _close_socket(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.close()
        except OSError:
            pass  # Already closed
