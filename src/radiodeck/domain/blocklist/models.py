"""Blocklist data models."""

from dataclasses import dataclass
from datetime import datetime

from radiodeck.domain.stations.models import Station

# Message thresholds for the number of individually blocked stations
BLOCK_WARNING_THRESHOLD = 100
BLOCK_LARGE_THRESHOLD = 500


@dataclass
class BlockedStation:
    """A blocked station with the fields needed to list it later."""

    station_uuid: str
    name: str
    blocked_at: datetime
    tags: str = ""
    country: str = ""
    country_code: str = ""
    state: str = ""
    language: str = ""
    codec: str = ""
    bitrate: int = 0

    @classmethod
    def from_station(cls, station: Station, blocked_at: datetime) -> "BlockedStation":
        return cls(
            station_uuid=station.station_uuid,
            name=station.name,
            blocked_at=blocked_at,
            tags=station.tags,
            country=station.country,
            country_code=station.country_code,
            state=station.state,
            language=station.language,
            codec=station.codec,
            bitrate=station.bitrate,
        )
