"""Persisted sleep timer preference (the last duration the user picked)."""

import json
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from radiodeck.core.store import write_json_atomic

SLEEP_TIMER_FILENAME = "sleep_timer.json"


@dataclass
class SleepTimerConfig:
    last_duration_minutes: int = 0
    version: int = 1


def get_sleep_timer_path(data_dir: Path) -> Path:
    return Path(data_dir) / SLEEP_TIMER_FILENAME


def load_sleep_timer_config(data_dir: Path) -> SleepTimerConfig:
    """Load the preference. Missing or unreadable files give the defaults."""
    path = get_sleep_timer_path(data_dir)
    if not path.exists():
        return SleepTimerConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return SleepTimerConfig(
            last_duration_minutes=int(data.get("last_duration_minutes", 0))
        )
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Could not read {path}, using defaults: {e}")
        return SleepTimerConfig()


def save_sleep_timer_config(data_dir: Path, config: SleepTimerConfig) -> None:
    """Write the preference atomically.

    Raises:
        PersistenceError: If the file cannot be written
    """
    write_json_atomic(
        get_sleep_timer_path(data_dir),
        {"last_duration_minutes": config.last_duration_minutes, "version": 1},
    )
