"""Playback domain - mpv process and JSON IPC control.

This domain handles:
- Spawning mpv for a station with connection-policy flags
- IPC endpoint allocation and the line-delimited JSON channel
- Volume, mute, pause and track-title state
"""

# Connection policy
from .connection import build_mpv_command, connection_flags

# IPC
from .ipc import (
    QUERY_TIMEOUT,
    WRITE_TIMEOUT,
    IPCEndpoint,
    MPVConnection,
    allocate_endpoint,
)

# Player
from .player import MAX_TRACK_HISTORY, PlayerController

__all__ = [
    # Connection policy
    "build_mpv_command",
    "connection_flags",
    # IPC
    "QUERY_TIMEOUT",
    "WRITE_TIMEOUT",
    "IPCEndpoint",
    "MPVConnection",
    "allocate_endpoint",
    # Player
    "MAX_TRACK_HISTORY",
    "PlayerController",
]
