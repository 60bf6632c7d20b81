"""
Blocklist manager: individually blocked stations plus block rules.

Stored in blocklist.json with the same debounced atomic persistence as the
other stores. The most recent block can be undone until the next load.
"""

from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from radiodeck.core.exceptions import (
    NotFoundError,
    StationAlreadyBlockedError,
    StationNotBlockedError,
    ValidationError,
)
from radiodeck.core.store import DEFAULT_SAVE_INTERVAL, PersistentStore, datetime_to_str
from radiodeck.domain.stations.models import Station

from .models import BLOCK_LARGE_THRESHOLD, BLOCK_WARNING_THRESHOLD, BlockedStation
from .rules import BlockRule, BlockRuleType, matches_any


def _parse_rule_type(rule_type: Union[BlockRuleType, str]) -> BlockRuleType:
    try:
        return BlockRuleType(rule_type)
    except ValueError:
        raise ValidationError(f"unknown block rule type: {rule_type!r}") from None


class BlocklistManager(PersistentStore[BlockedStation]):
    """Thread-safe blocklist with debounced saves."""

    filename = "blocklist.json"
    records_key = "blocked_stations"

    def __init__(self, data_dir: Path, save_interval: float = DEFAULT_SAVE_INTERVAL):
        self._rules: list[BlockRule] = []
        self._last_block: Optional[BlockedStation] = None
        super().__init__(data_dir, save_interval)

    def _record_to_dict(self, record: BlockedStation) -> dict:
        return {
            "name": record.name,
            "blocked_at": datetime_to_str(record.blocked_at),
            "tags": record.tags,
            "country": record.country,
            "country_code": record.country_code,
            "state": record.state,
            "language": record.language,
            "codec": record.codec,
            "bitrate": record.bitrate,
        }

    def _record_from_dict(self, data: dict) -> BlockedStation:
        # Key is filled in by _load_extra; records are keyed by UUID
        return BlockedStation(
            station_uuid="",
            name=data.get("name", ""),
            blocked_at=datetime.fromisoformat(data["blocked_at"]),
            tags=data.get("tags", ""),
            country=data.get("country", ""),
            country_code=data.get("country_code", ""),
            state=data.get("state", ""),
            language=data.get("language", ""),
            codec=data.get("codec", ""),
            bitrate=int(data.get("bitrate", 0)),
        )

    def _dump_extra(self) -> dict:
        return {"block_rules": [rule.to_dict() for rule in self._rules]}

    def _load_extra(self, document: dict) -> None:
        for uuid, record in self._records.items():
            record.station_uuid = uuid
        self._rules = [BlockRule.from_dict(d) for d in document.get("block_rules") or []]
        self._last_block = None

    def _reset_extra(self) -> None:
        self._rules = []
        self._last_block = None

    # ------------------------------------------------------------------
    # Individual blocks
    # ------------------------------------------------------------------

    def block(self, station: Station) -> str:
        """Block a station and remember it for undo.

        Returns:
            Confirmation message, with a warning appended at 100 and 500 blocks

        Raises:
            ValidationError: If station is None
            StationAlreadyBlockedError: If the station is already blocked
        """
        if station is None:
            raise ValidationError("station cannot be None")

        with self._lock:
            if station.station_uuid in self._records:
                raise StationAlreadyBlockedError(station.station_uuid)

            with self._mutate():
                blocked = BlockedStation.from_station(station, datetime.now())
                self._records[station.station_uuid] = blocked
                self._last_block = blocked
            count = len(self._records)

        logger.info(f"Blocked station {station.station_uuid} ({station.trimmed_name})")

        message = f"Blocked: {station.trimmed_name}"
        if count == BLOCK_WARNING_THRESHOLD:
            message += (
                f"\nYou've blocked {count} stations. Consider using block rules instead."
            )
        elif count == BLOCK_LARGE_THRESHOLD:
            message += f"\nLarge blocklist ({count} stations). Export recommended."
        return message

    def unblock(self, station_uuid: str) -> None:
        """Unblock a station.

        Raises:
            StationNotBlockedError: If the station is not blocked
        """
        with self._lock:
            if station_uuid not in self._records:
                raise StationNotBlockedError(station_uuid)
            with self._mutate():
                del self._records[station_uuid]
                if self._last_block and self._last_block.station_uuid == station_uuid:
                    self._last_block = None

        logger.info(f"Unblocked station {station_uuid}")

    def is_blocked(self, station_uuid: str) -> bool:
        with self._lock:
            return station_uuid in self._records

    def get_all(self) -> list[BlockedStation]:
        """All blocked stations, most recently blocked first."""
        with self._lock:
            return [
                replace(record)
                for uuid, record in sorted(
                    self._records.items(),
                    key=lambda item: (-item[1].blocked_at.timestamp(), item[0]),
                )
            ]

    def count(self) -> int:
        return len(self)

    def clear(self) -> None:
        """Unblock every station. Block rules are kept."""
        with self._mutate():
            self._records.clear()
            self._last_block = None

    def get_last_blocked(self) -> Optional[BlockedStation]:
        with self._lock:
            return replace(self._last_block) if self._last_block else None

    def undo_last_block(self) -> bool:
        """Unblock the most recently blocked station.

        Returns:
            False if there is nothing to undo
        """
        with self._lock:
            if self._last_block is None:
                return False
            with self._mutate():
                self._records.pop(self._last_block.station_uuid, None)
                undone = self._last_block
                self._last_block = None

        logger.info(f"Undid block of {undone.station_uuid}")
        return True

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def add_block_rule(self, rule_type: Union[BlockRuleType, str], value: str) -> BlockRule:
        """Add a block rule.

        Raises:
            ValidationError: On unknown type, empty value, or duplicate rule
        """
        parsed_type = _parse_rule_type(rule_type)
        value = (value or "").strip()
        if not value:
            raise ValidationError("block rule value cannot be empty")

        with self._lock:
            for rule in self._rules:
                if rule.same_as(parsed_type, value):
                    raise ValidationError(f"rule already exists: {rule}")
            rule = BlockRule(type=parsed_type, value=value)
            with self._mutate():
                self._rules.append(rule)

        logger.info(f"Added block rule {rule}")
        return rule

    def remove_block_rule(self, rule_type: Union[BlockRuleType, str], value: str) -> None:
        """Remove a block rule.

        Raises:
            ValidationError: On unknown rule type
            NotFoundError: If no matching rule exists
        """
        parsed_type = _parse_rule_type(rule_type)
        value = (value or "").strip()

        with self._lock:
            for index, rule in enumerate(self._rules):
                if rule.same_as(parsed_type, value):
                    with self._mutate():
                        del self._rules[index]
                    logger.info(f"Removed block rule {rule}")
                    return
        raise NotFoundError("rule not found")

    def get_block_rules(self) -> list[BlockRule]:
        with self._lock:
            return list(self._rules)

    def is_blocked_by_rule(self, station: Optional[Station]) -> bool:
        with self._lock:
            return matches_any(self._rules, station)

    def is_blocked_by_any(self, station: Optional[Station]) -> bool:
        """True if the station is blocked individually or by a rule."""
        if station is None:
            return False
        with self._lock:
            if station.station_uuid in self._records:
                return True
            return matches_any(self._rules, station)

    def allows(self, station: Station) -> bool:
        """Predicate for shuffle/search filtering: not blocked by anything."""
        return not self.is_blocked_by_any(station)
