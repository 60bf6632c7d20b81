"""
Custom station tags and tag-based playlists.

Tags are normalized to lowercase, trimmed, and restricted to letters, digits,
spaces, hyphens and underscores. A sorted index of every tag ever used backs
autocomplete; named playlists are saved tag queries.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

from radiodeck.core.exceptions import NotFoundError, ValidationError
from radiodeck.core.store import (
    DEFAULT_SAVE_INTERVAL,
    PersistentStore,
    datetime_from_str,
    datetime_to_str,
)

MAX_TAG_LENGTH = 50
MAX_TAGS_PER_STATION = 20
MATCH_ANY = "any"
MATCH_ALL = "all"

TAG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9\-_ ]*[a-z0-9]$|^[a-z0-9]$")


@dataclass
class StationTags:
    """Tags attached to one station."""

    tags: list[str]
    created_at: datetime
    updated_at: datetime


@dataclass
class TagPlaylist:
    """A named, dynamic playlist defined by tags."""

    tags: list[str]
    match_mode: str  # "any" or "all"
    created_at: datetime = field(default_factory=datetime.now)


def normalize_tag(tag: str) -> str:
    """Lowercase, trim and validate a tag.

    Raises:
        ValidationError: If the tag is empty, too long or has invalid characters
    """
    normalized = tag.strip().lower()
    if not normalized:
        raise ValidationError("tag cannot be empty")
    if len(normalized) > MAX_TAG_LENGTH:
        raise ValidationError(f"tag cannot exceed {MAX_TAG_LENGTH} characters")
    if not TAG_PATTERN.match(normalized):
        raise ValidationError(f"tag contains invalid characters: {tag!r}")
    return normalized


def _copy_tags(record: StationTags) -> StationTags:
    return replace(record, tags=list(record.tags))


def _copy_playlist(playlist: TagPlaylist) -> TagPlaylist:
    return replace(playlist, tags=list(playlist.tags))


class TagsManager(PersistentStore[StationTags]):
    """Thread-safe store of custom station tags with debounced saves."""

    filename = "station_tags.json"
    records_key = "station_tags"

    def __init__(self, data_dir: Path, save_interval: float = DEFAULT_SAVE_INTERVAL):
        self._all_tags: list[str] = []
        self._playlists: dict[str, TagPlaylist] = {}
        super().__init__(data_dir, save_interval)

    def _record_to_dict(self, record: StationTags) -> dict:
        return {
            "tags": list(record.tags),
            "created_at": datetime_to_str(record.created_at),
            "updated_at": datetime_to_str(record.updated_at),
        }

    def _record_from_dict(self, data: dict) -> StationTags:
        created_at = datetime.fromisoformat(data["created_at"])
        return StationTags(
            tags=[str(t) for t in data.get("tags") or []],
            created_at=created_at,
            updated_at=datetime_from_str(data.get("updated_at")) or created_at,
        )

    def _dump_extra(self) -> dict:
        return {
            "all_tags": list(self._all_tags),
            "tag_playlists": {
                name: {
                    "tags": list(p.tags),
                    "match_mode": p.match_mode,
                    "created_at": datetime_to_str(p.created_at),
                }
                for name, p in self._playlists.items()
            },
        }

    def _load_extra(self, document: dict) -> None:
        self._all_tags = sorted(set(document.get("all_tags") or []))
        self._playlists = {
            name: TagPlaylist(
                tags=list(data["tags"]),
                match_mode=data["match_mode"],
                created_at=datetime.fromisoformat(data["created_at"]),
            )
            for name, data in (document.get("tag_playlists") or {}).items()
        }

    def _reset_extra(self) -> None:
        self._all_tags = []
        self._playlists = {}

    def _index_tag(self, tag: str) -> None:
        if tag not in self._all_tags:
            self._all_tags.append(tag)
            self._all_tags.sort()

    # ------------------------------------------------------------------
    # Station tags
    # ------------------------------------------------------------------

    def add_tag(self, station_uuid: str, tag: str) -> None:
        """Add a tag to a station. Adding a tag it already has is a no-op.

        Raises:
            ValidationError: If the tag is invalid or the station is at the limit
        """
        normalized = normalize_tag(tag)
        now = datetime.now()

        with self._lock:
            existing = self._records.get(station_uuid)
            if existing is not None:
                if normalized in existing.tags:
                    return
                if len(existing.tags) >= MAX_TAGS_PER_STATION:
                    raise ValidationError(
                        f"station cannot have more than {MAX_TAGS_PER_STATION} tags"
                    )

            with self._mutate():
                if existing is None:
                    self._records[station_uuid] = StationTags(
                        tags=[normalized], created_at=now, updated_at=now
                    )
                else:
                    existing.tags.append(normalized)
                    existing.updated_at = now
                self._index_tag(normalized)

        logger.debug(f"Tagged {station_uuid}: {normalized}")

    def remove_tag(self, station_uuid: str, tag: str) -> None:
        """Remove a tag from a station. Absent station or tag is a no-op.

        Raises:
            ValidationError: If the tag is invalid
        """
        normalized = normalize_tag(tag)

        with self._lock:
            existing = self._records.get(station_uuid)
            if existing is None or normalized not in existing.tags:
                return
            with self._mutate():
                existing.tags = [t for t in existing.tags if t != normalized]
                existing.updated_at = datetime.now()

    def set_tags(self, station_uuid: str, tags: list[str]) -> None:
        """Replace all tags of a station (duplicates collapse).

        Raises:
            ValidationError: If any tag is invalid or there are too many
        """
        normalized: list[str] = []
        for tag in tags:
            n = normalize_tag(tag)
            if n not in normalized:
                normalized.append(n)
        if len(normalized) > MAX_TAGS_PER_STATION:
            raise ValidationError(
                f"station cannot have more than {MAX_TAGS_PER_STATION} tags"
            )

        now = datetime.now()
        with self._mutate():
            existing = self._records.get(station_uuid)
            if existing is None:
                self._records[station_uuid] = StationTags(
                    tags=normalized, created_at=now, updated_at=now
                )
            else:
                existing.tags = normalized
                existing.updated_at = now
            for tag in normalized:
                self._index_tag(tag)

    def clear_tags(self, station_uuid: str) -> None:
        """Remove every tag from a station. Absent station is a no-op."""
        with self._lock:
            if station_uuid not in self._records:
                return
            with self._mutate():
                del self._records[station_uuid]

    def get_tags(self, station_uuid: str) -> list[str]:
        """Tags of a station (empty list if none)."""
        with self._lock:
            record = self._records.get(station_uuid)
            return list(record.tags) if record else []

    def get_station_tags(self, station_uuid: str) -> Optional[StationTags]:
        """Copy of the full record, or None if the station has no tags."""
        with self._lock:
            record = self._records.get(station_uuid)
            return _copy_tags(record) if record else None

    def get_all_tags(self) -> list[str]:
        """Sorted list of every tag ever used."""
        with self._lock:
            return list(self._all_tags)

    def get_stations_by_tag(self, tag: str) -> list[str]:
        """Sorted station UUIDs carrying the tag (empty for an invalid tag)."""
        try:
            normalized = normalize_tag(tag)
        except ValidationError:
            return []

        with self._lock:
            return sorted(
                uuid
                for uuid, record in self._records.items()
                if normalized in record.tags
            )

    def get_stations_by_tags(self, tags: list[str], match_all: bool = False) -> list[str]:
        """Sorted station UUIDs matching any (or all) of the tags.

        Invalid tags are ignored; if none remain the result is empty.
        """
        wanted: set[str] = set()
        for tag in tags:
            try:
                wanted.add(normalize_tag(tag))
            except ValidationError:
                continue
        if not wanted:
            return []

        with self._lock:
            result = []
            for uuid, record in self._records.items():
                present = wanted.intersection(record.tags)
                if (match_all and present == wanted) or (not match_all and present):
                    result.append(uuid)
            return sorted(result)

    def get_tagged_stations(self) -> list[str]:
        """Sorted UUIDs of stations with at least one tag."""
        with self._lock:
            return sorted(uuid for uuid, record in self._records.items() if record.tags)

    # ------------------------------------------------------------------
    # Tag playlists
    # ------------------------------------------------------------------

    def create_playlist(self, name: str, tags: list[str], match_mode: str) -> None:
        """Create a named tag playlist.

        Raises:
            ValidationError: On empty name/tags, bad match mode, or duplicate name
        """
        if not name:
            raise ValidationError("playlist name cannot be empty")
        if not tags:
            raise ValidationError("playlist must have at least one tag")
        if match_mode not in (MATCH_ANY, MATCH_ALL):
            raise ValidationError("match mode must be 'any' or 'all'")
        normalized = [normalize_tag(tag) for tag in tags]

        with self._lock:
            if name in self._playlists:
                raise ValidationError(f"playlist '{name}' already exists")
            with self._mutate():
                self._playlists[name] = TagPlaylist(
                    tags=normalized, match_mode=match_mode, created_at=datetime.now()
                )

        logger.info(f"Created tag playlist '{name}' ({match_mode}: {normalized})")

    def delete_playlist(self, name: str) -> None:
        """Delete a playlist.

        Raises:
            NotFoundError: If no playlist has that name
        """
        with self._lock:
            if name not in self._playlists:
                raise NotFoundError(f"playlist '{name}' not found")
            with self._mutate():
                del self._playlists[name]

    def get_playlist(self, name: str) -> Optional[TagPlaylist]:
        with self._lock:
            playlist = self._playlists.get(name)
            return _copy_playlist(playlist) if playlist else None

    def get_all_playlists(self) -> dict[str, TagPlaylist]:
        with self._lock:
            return {name: _copy_playlist(p) for name, p in self._playlists.items()}

    def get_playlist_stations(self, name: str) -> list[str]:
        """Station UUIDs matching a playlist's criteria (empty if unknown)."""
        playlist = self.get_playlist(name)
        if playlist is None:
            return []
        return self.get_stations_by_tags(
            playlist.tags, match_all=playlist.match_mode == MATCH_ALL
        )
