"""
Display helpers for play statistics, ratings and countdowns.

Pure functions: callers decide where the strings go.
"""

from datetime import datetime
from typing import Optional

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY
MONTH = 30 * DAY
YEAR = 365 * DAY


def _plural(count: int, unit: str) -> str:
    return f"1 {unit} ago" if count == 1 else f"{count} {unit}s ago"


def format_last_played(when: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Relative time such as "5 minutes ago" or "Yesterday".

    Entries older than a year are shown as a date.
    """
    if when is None:
        return "Never"

    now = now or datetime.now()
    diff = (now - when).total_seconds()

    if diff < MINUTE:
        return "Just now"
    if diff < HOUR:
        return _plural(int(diff // MINUTE), "minute")
    if diff < DAY:
        return _plural(int(diff // HOUR), "hour")
    if diff < WEEK:
        days = int(diff // DAY)
        return "Yesterday" if days == 1 else f"{days} days ago"
    if diff < MONTH:
        return _plural(int(diff // WEEK), "week")
    if diff < YEAR:
        months = int(diff // MONTH)
        if months >= 12:
            return "About a year ago"
        return _plural(months, "month")
    return f"{when:%b} {when.day}, {when.year}"


def format_duration(seconds: int) -> str:
    """Compact listening time: "45s", "3m 20s", "2h 5m"."""
    seconds = int(seconds)
    if seconds <= 0:
        return "0s"
    if seconds < MINUTE:
        return f"{seconds}s"
    if seconds < HOUR:
        minutes, secs = divmod(seconds, MINUTE)
        return f"{minutes}m" if secs == 0 else f"{minutes}m {secs}s"
    hours, rest = divmod(seconds, HOUR)
    minutes = rest // MINUTE
    return f"{hours}h" if minutes == 0 else f"{hours}h {minutes}m"


def render_stars(rating: int, unicode: bool = True) -> str:
    """Five stars, filled up to rating: 4 -> "★ ★ ★ ★ ☆"."""
    rating = max(0, min(5, rating))
    filled, empty = ("★", "☆") if unicode else ("*", "-")
    return " ".join([filled] * rating + [empty] * (5 - rating))


def render_stars_compact(rating: int, unicode: bool = True) -> str:
    """Only the filled stars; "" for unrated or out-of-range ratings."""
    if not 1 <= rating <= 5:
        return ""
    return " ".join(["★" if unicode else "*"] * rating)


def format_countdown(seconds: float) -> str:
    """Timer display: "M:SS", or "H:MM:SS" from one hour up."""
    total = max(0, int(seconds))
    hours, rest = divmod(total, HOUR)
    minutes, secs = divmod(rest, MINUTE)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
