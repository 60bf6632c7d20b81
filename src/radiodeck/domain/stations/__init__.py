"""Station models shared by the player and the stores."""

from .models import CachedStation, Station, station_from_cache

__all__ = [
    "CachedStation",
    "Station",
    "station_from_cache",
]
