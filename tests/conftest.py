"""Shared fixtures: stations, a fake mpv binary, and polling helpers."""

import json
import os
import shutil
import socket
import subprocess
import tempfile
import threading
import time
from typing import Callable, Optional
from unittest.mock import patch

import pytest

from radiodeck.domain.stations.models import Station


def make_station(uuid: str = "uuid-1", **overrides) -> Station:
    fields = {
        "station_uuid": uuid,
        "name": f"Station {uuid}",
        "url": f"http://stream.example.com/{uuid}",
        "tags": "jazz,smooth jazz",
        "country": "Germany",
        "country_code": "DE",
        "language": "german,english",
        "codec": "MP3",
        "bitrate": 128,
        "votes": 10,
    }
    fields.update(overrides)
    return Station(**fields)


@pytest.fixture
def station() -> Station:
    """A fully populated station."""
    return make_station()


@pytest.fixture
def station_factory() -> Callable[..., Station]:
    """Build stations with per-test overrides."""
    return make_station


@pytest.fixture
def data_dir(tmp_path):
    """Empty data directory for the stores."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll a predicate until it is true or the timeout runs out."""

    def _wait(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return predicate()

    return _wait


# ----------------------------------------------------------------------
# Fake mpv
# ----------------------------------------------------------------------


class FakeMPVServer:
    """Answers mpv JSON IPC on a Unix socket.

    Every reply is preceded by an event line, as real mpv interleaves
    events with replies.
    """

    def __init__(self, path: str):
        self.path = path
        self.properties = {
            "volume": 100,
            "pause": False,
            "media-title": "",
            "audio-bitrate": 128000.0,
        }
        self.commands: list[list] = []
        self.connections = 0
        self._closed = False
        self._sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._sock.bind(path)
        self._sock.listen(4)
        self._sock.settimeout(0.05)
        threading.Thread(target=self._serve, daemon=True).start()

    def _serve(self) -> None:
        while not self._closed:
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            self.connections += 1
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        buffer = b""
        with conn:
            while True:
                try:
                    data = conn.recv(4096)
                except OSError:
                    return
                if not data:
                    return
                buffer += data
                while b"\n" in buffer:
                    line, buffer = buffer.split(b"\n", 1)
                    try:
                        conn.sendall(self._reply(json.loads(line)))
                    except OSError:
                        return

    def _reply(self, message: dict) -> bytes:
        command = message["command"]
        self.commands.append(command)
        reply = {"error": "success", "request_id": message.get("request_id", 0)}

        if command[0] == "get_property":
            if command[1] in self.properties:
                reply["data"] = self.properties[command[1]]
            else:
                reply["error"] = "property unavailable"
        elif command[0] == "set_property":
            self.properties[command[1]] = command[2]
        elif command[0] == "cycle":
            self.properties[command[1]] = not self.properties.get(command[1])

        event = {"event": "property-change", "name": "metadata"}
        return (json.dumps(event) + "\n" + json.dumps(reply) + "\n").encode("utf-8")

    def close(self) -> None:
        self._closed = True
        self._sock.close()
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass


class FakeProcess:
    """Popen stand-in whose lifetime controls a FakeMPVServer."""

    def __init__(self, args: list[str], server: Optional[FakeMPVServer], ignore_sigterm: bool):
        self.args = args
        self.server = server
        self.pid = 4242
        self.returncode: Optional[int] = None
        self.ignore_sigterm = ignore_sigterm
        self.terminate_calls = 0
        self.kill_calls = 0

    def poll(self) -> Optional[int]:
        return self.returncode

    def wait(self, timeout: Optional[float] = None) -> int:
        if self.returncode is None:
            if timeout:
                time.sleep(timeout)
            raise subprocess.TimeoutExpired(self.args, timeout)
        return self.returncode

    def terminate(self) -> None:
        self.terminate_calls += 1
        if not self.ignore_sigterm:
            self.exit(-15)

    def kill(self) -> None:
        self.kill_calls += 1
        self.exit(-9)

    def exit(self, code: int) -> None:
        """Simulate mpv exiting."""
        if self.returncode is None:
            self.returncode = code
            if self.server:
                self.server.close()


class FakeMPV:
    """Replaces the mpv binary: each spawn starts a fake IPC server."""

    def __init__(self):
        self.processes: list[FakeProcess] = []
        self.serve_ipc = True
        self.ignore_sigterm = False

    def popen(self, cmd: list[str], **kwargs) -> FakeProcess:
        address = next(
            arg.split("=", 1)[1] for arg in cmd if arg.startswith("--input-ipc-server=")
        )
        server = FakeMPVServer(address) if self.serve_ipc else None
        process = FakeProcess(cmd, server, self.ignore_sigterm)
        self.processes.append(process)
        return process

    @property
    def last(self) -> FakeProcess:
        return self.processes[-1]

    def close(self) -> None:
        for process in self.processes:
            process.exit(0)


@pytest.fixture
def socket_dir():
    """Short directory for IPC sockets (Unix socket paths are length-limited)."""
    path = tempfile.mkdtemp(prefix="rd-")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def fake_mpv():
    """Patch mpv lookup and spawning in the player module."""
    fake = FakeMPV()
    with (
        patch(
            "radiodeck.domain.playback.player.shutil.which",
            return_value="/usr/bin/mpv",
        ),
        patch(
            "radiodeck.domain.playback.player.subprocess.Popen",
            side_effect=fake.popen,
        ),
    ):
        yield fake
    fake.close()
