"""Shuffle mode over a fixed set of stations."""

from .manager import ShuffleManager, ShuffleStatus, StationFilter

__all__ = [
    "ShuffleManager",
    "ShuffleStatus",
    "StationFilter",
]
