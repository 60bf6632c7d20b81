"""
Block rules: hide whole groups of stations by country, language or tag.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from radiodeck.domain.stations.models import Station


class BlockRuleType(str, Enum):
    COUNTRY = "country"
    LANGUAGE = "language"
    TAG = "tag"


@dataclass(frozen=True)
class BlockRule:
    """A rule matching stations by one attribute.

    Values compare case-insensitively. Country rules match either the country
    name or its code; language and tag rules match any entry of the station's
    comma-separated list.
    """

    type: BlockRuleType
    value: str

    def matches(self, station: Optional[Station]) -> bool:
        if station is None:
            return False

        wanted = self.value.casefold()
        if self.type == BlockRuleType.COUNTRY:
            return (
                station.country.casefold() == wanted
                or station.country_code.casefold() == wanted
            )
        if self.type == BlockRuleType.LANGUAGE:
            return any(lang.casefold() == wanted for lang in station.language_list())
        if self.type == BlockRuleType.TAG:
            return any(tag.casefold() == wanted for tag in station.tag_list())
        return False

    def same_as(self, rule_type: BlockRuleType, value: str) -> bool:
        """Rule identity is the type plus the case-insensitive value."""
        return self.type == rule_type and self.value.casefold() == value.casefold()

    def to_dict(self) -> dict:
        return {"type": self.type.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "BlockRule":
        return cls(type=BlockRuleType(data["type"]), value=str(data["value"]))

    def __str__(self) -> str:
        return f"{self.type.value.capitalize()}: {self.value}"


def matches_any(rules: Iterable[BlockRule], station: Optional[Station]) -> bool:
    return any(rule.matches(station) for rule in rules)
