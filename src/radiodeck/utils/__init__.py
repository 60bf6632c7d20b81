"""
Cross-cutting utilities for radiodeck.

Contains:
- formatting: relative times, durations, stars and countdowns
"""

from .formatting import (
    format_countdown,
    format_duration,
    format_last_played,
    render_stars,
    render_stars_compact,
)

__all__ = [
    "format_countdown",
    "format_duration",
    "format_last_played",
    "render_stars",
    "render_stars_compact",
]
