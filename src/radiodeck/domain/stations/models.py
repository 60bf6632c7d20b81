"""
Station domain models.

Stations come from the search collaborator; the engine only reads them and
caches a projection next to ratings and play statistics.
"""

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class Station:
    """A radio station as returned by the station directory."""

    station_uuid: str
    name: str = ""
    url: str = ""  # Resolved stream URL handed to the decoder
    tags: str = ""  # Comma-separated
    country: str = ""
    country_code: str = ""
    state: str = ""
    language: str = ""  # Comma-separated
    votes: int = 0
    codec: str = ""
    bitrate: int = 0
    volume: Optional[int] = None  # Per-station volume (0-100), None means player default

    @property
    def trimmed_name(self) -> str:
        return self.name.strip()

    def tag_list(self) -> list[str]:
        return [t.strip() for t in self.tags.split(",") if t.strip()]

    def language_list(self) -> list[str]:
        return [lang.strip() for lang in self.language.split(",") if lang.strip()]


@dataclass(frozen=True)
class CachedStation:
    """Display fields of a station, stored so lists render without a lookup."""

    name: str = ""
    url: str = ""
    country: str = ""
    language: str = ""
    tags: str = ""
    codec: str = ""
    bitrate: int = 0
    votes: int = 0

    @classmethod
    def from_station(cls, station: Station) -> "CachedStation":
        return cls(
            name=station.name,
            url=station.url,
            country=station.country,
            language=station.language,
            tags=station.tags,
            codec=station.codec,
            bitrate=station.bitrate,
            votes=station.votes,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "CachedStation":
        return cls(
            name=data.get("name", ""),
            url=data.get("url", ""),
            country=data.get("country", ""),
            language=data.get("language", ""),
            tags=data.get("tags", ""),
            codec=data.get("codec", ""),
            bitrate=int(data.get("bitrate", 0)),
            votes=int(data.get("votes", 0)),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def to_station(self, station_uuid: str) -> Station:
        """Rebuild a Station from the cached fields."""
        return Station(
            station_uuid=station_uuid,
            name=self.name,
            url=self.url,
            country=self.country,
            language=self.language,
            tags=self.tags,
            codec=self.codec,
            bitrate=self.bitrate,
            votes=self.votes,
        )


def station_from_cache(
    station_uuid: str, cache: dict[str, CachedStation]
) -> Station:
    """Station for a UUID, populated from the cache when available."""
    cached = cache.get(station_uuid)
    if cached is None:
        return Station(station_uuid=station_uuid)
    return cached.to_station(station_uuid)
