"""Tests for custom tags and tag playlists."""

import json
from pathlib import Path

import pytest

from radiodeck.core.exceptions import NotFoundError, ValidationError
from radiodeck.domain.tags import (
    MAX_TAGS_PER_STATION,
    TagsManager,
    normalize_tag,
)


@pytest.fixture
def tags(data_dir: Path):
    """Tags store without a running flush thread."""
    manager = TagsManager(data_dir, save_interval=60)
    yield manager
    manager.close()


class TestNormalizeTag:
    """Tests for normalize_tag."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Jazz", "jazz"),
            ("  late night  ", "late night"),
            ("lo-fi_beats", "lo-fi_beats"),
            ("a", "a"),
            ("80s", "80s"),
        ],
    )
    def test_valid(self, raw: str, expected: str) -> None:
        """Test valid tags are lowercased and trimmed."""
        assert normalize_tag(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "-jazz", "jazz-", "rock&roll", "jazz!"])
    def test_invalid(self, raw: str) -> None:
        """Test empty tags and bad characters are rejected."""
        with pytest.raises(ValidationError):
            normalize_tag(raw)

    def test_length_limit(self) -> None:
        """Test 50 characters pass and 51 fail."""
        assert normalize_tag("a" * 50) == "a" * 50
        with pytest.raises(ValidationError):
            normalize_tag("a" * 51)


class TestStationTags:
    """Tests for tagging stations."""

    def test_add_tag_is_idempotent(self, tags: TagsManager) -> None:
        """Test adding the same tag twice keeps one copy."""
        tags.add_tag("s1", "Jazz")
        tags.add_tag("s1", "jazz ")
        assert tags.get_tags("s1") == ["jazz"]

    def test_add_tag_updates_index(self, tags: TagsManager) -> None:
        """Test every used tag appears in the sorted index."""
        tags.add_tag("s1", "rock")
        tags.add_tag("s2", "ambient")
        tags.add_tag("s2", "rock")
        assert tags.get_all_tags() == ["ambient", "rock"]

    def test_tag_limit(self, tags: TagsManager) -> None:
        """Test a station cannot exceed the tag limit."""
        for i in range(MAX_TAGS_PER_STATION):
            tags.add_tag("s1", f"tag{i}")
        with pytest.raises(ValidationError):
            tags.add_tag("s1", "one-too-many")
        assert len(tags.get_tags("s1")) == MAX_TAGS_PER_STATION

    def test_invalid_tag_leaves_store_clean(self, tags: TagsManager) -> None:
        """Test validation happens before any mutation."""
        with pytest.raises(ValidationError):
            tags.add_tag("s1", "bad!")
        assert tags.get_tags("s1") == []
        assert not tags.has_pending_changes

    def test_remove_tag(self, tags: TagsManager) -> None:
        """Test removing a tag keeps the others."""
        tags.add_tag("s1", "rock")
        tags.add_tag("s1", "pop")
        tags.remove_tag("s1", "ROCK")
        assert tags.get_tags("s1") == ["pop"]

    def test_remove_absent_is_noop(self, tags: TagsManager) -> None:
        """Test removing from an untagged station does nothing."""
        tags.remove_tag("unknown", "rock")
        assert not tags.has_pending_changes

    def test_set_tags_replaces_and_dedupes(self, tags: TagsManager) -> None:
        """Test set_tags replaces the list and collapses duplicates."""
        tags.add_tag("s1", "old")
        tags.set_tags("s1", ["New", "new", "other"])
        assert tags.get_tags("s1") == ["new", "other"]

    def test_clear_tags(self, tags: TagsManager) -> None:
        """Test clear_tags forgets the station; absent is a no-op."""
        tags.add_tag("s1", "rock")
        tags.clear_tags("s1")
        tags.clear_tags("s1")
        assert tags.get_tags("s1") == []
        assert tags.get_station_tags("s1") is None


class TestQueries:
    """Tests for tag lookups."""

    @pytest.fixture
    def populated(self, tags: TagsManager) -> TagsManager:
        tags.set_tags("a", ["jazz", "chill"])
        tags.set_tags("b", ["jazz"])
        tags.set_tags("c", ["rock", "chill"])
        return tags

    def test_by_single_tag(self, populated: TagsManager) -> None:
        """Test lookup by one tag, case-insensitive."""
        assert populated.get_stations_by_tag("JAZZ") == ["a", "b"]

    def test_by_invalid_tag_is_empty(self, populated: TagsManager) -> None:
        """Test an invalid tag matches nothing instead of raising."""
        assert populated.get_stations_by_tag("!!") == []

    def test_match_any(self, populated: TagsManager) -> None:
        """Test any-mode matches stations with at least one tag."""
        assert populated.get_stations_by_tags(["jazz", "rock"]) == ["a", "b", "c"]

    def test_match_all(self, populated: TagsManager) -> None:
        """Test all-mode requires every tag."""
        assert populated.get_stations_by_tags(["jazz", "chill"], match_all=True) == ["a"]

    def test_tagged_stations(self, populated: TagsManager) -> None:
        """Test listing every tagged station."""
        assert populated.get_tagged_stations() == ["a", "b", "c"]


class TestPlaylists:
    """Tests for tag playlists."""

    def test_create_and_resolve(self, tags: TagsManager) -> None:
        """Test a playlist resolves to matching stations."""
        tags.set_tags("a", ["jazz", "chill"])
        tags.set_tags("b", ["jazz"])
        tags.create_playlist("Evening", ["Jazz", "chill"], "all")

        playlist = tags.get_playlist("Evening")
        assert playlist.tags == ["jazz", "chill"]
        assert tags.get_playlist_stations("Evening") == ["a"]

    def test_duplicate_name_rejected(self, tags: TagsManager) -> None:
        """Test playlist names are unique."""
        tags.create_playlist("Mix", ["jazz"], "any")
        with pytest.raises(ValidationError):
            tags.create_playlist("Mix", ["rock"], "any")

    @pytest.mark.parametrize(
        "name, playlist_tags, mode",
        [("", ["jazz"], "any"), ("Mix", [], "any"), ("Mix", ["jazz"], "some")],
    )
    def test_invalid_playlist(self, tags: TagsManager, name, playlist_tags, mode) -> None:
        """Test empty name, no tags and unknown mode are rejected."""
        with pytest.raises(ValidationError):
            tags.create_playlist(name, playlist_tags, mode)

    def test_delete_absent_raises(self, tags: TagsManager) -> None:
        """Test deleting an unknown playlist is NotFoundError."""
        with pytest.raises(NotFoundError):
            tags.delete_playlist("missing")

    def test_delete(self, tags: TagsManager) -> None:
        """Test deleting removes the playlist."""
        tags.create_playlist("Mix", ["jazz"], "any")
        tags.delete_playlist("Mix")
        assert tags.get_playlist("Mix") is None
        assert tags.get_all_playlists() == {}

    def test_unknown_playlist_resolves_empty(self, tags: TagsManager) -> None:
        """Test an unknown playlist has no stations."""
        assert tags.get_playlist_stations("nope") == []


class TestPersistence:
    """Tests for the tags file."""

    def test_round_trip(self, data_dir: Path) -> None:
        """Test tags, index and playlists survive a reopen."""
        manager = TagsManager(data_dir, save_interval=60)
        manager.add_tag("s1", "jazz")
        manager.create_playlist("Mix", ["jazz"], "any")
        manager.close()

        document = json.loads((data_dir / "station_tags.json").read_text())
        assert document["all_tags"] == ["jazz"]
        assert document["tag_playlists"]["Mix"]["match_mode"] == "any"

        reopened = TagsManager(data_dir, save_interval=60)
        try:
            assert reopened.get_tags("s1") == ["jazz"]
            assert reopened.get_all_tags() == ["jazz"]
            assert reopened.get_playlist_stations("Mix") == ["s1"]
        finally:
            reopened.close()
