"""Station blocklist and block rules."""

from .manager import BlocklistManager
from .models import BLOCK_LARGE_THRESHOLD, BLOCK_WARNING_THRESHOLD, BlockedStation
from .rules import BlockRule, BlockRuleType, matches_any

__all__ = [
    "BLOCK_LARGE_THRESHOLD",
    "BLOCK_WARNING_THRESHOLD",
    "BlockRule",
    "BlockRuleType",
    "BlockedStation",
    "BlocklistManager",
    "matches_any",
]
