"""Tests for the persisted sleep timer preference."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from radiodeck.core.exceptions import PersistenceError
from radiodeck.domain.timer import (
    SleepTimerConfig,
    get_sleep_timer_path,
    load_sleep_timer_config,
    save_sleep_timer_config,
)


class TestSleepTimerPreferences:
    """Tests for load/save of sleep_timer.json."""

    def test_missing_file_gives_defaults(self, data_dir: Path) -> None:
        """Test no file means last duration 0."""
        assert load_sleep_timer_config(data_dir) == SleepTimerConfig()

    def test_round_trip(self, data_dir: Path) -> None:
        """Test a saved preference loads back."""
        save_sleep_timer_config(data_dir, SleepTimerConfig(last_duration_minutes=45))

        assert load_sleep_timer_config(data_dir).last_duration_minutes == 45
        document = json.loads(get_sleep_timer_path(data_dir).read_text())
        assert document == {"last_duration_minutes": 45, "version": 1}

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]", '{"last_duration_minutes": "x"}'])
    def test_corrupt_file_gives_defaults(self, data_dir: Path, content: str) -> None:
        """Test unreadable content falls back to the defaults."""
        get_sleep_timer_path(data_dir).write_text(content)
        assert load_sleep_timer_config(data_dir) == SleepTimerConfig()

    def test_save_failure_raises(self, data_dir: Path) -> None:
        """Test a failed write surfaces as PersistenceError."""
        with patch(
            "radiodeck.domain.timer.preferences.write_json_atomic",
            side_effect=PersistenceError(data_dir / "sleep_timer.json"),
        ):
            with pytest.raises(PersistenceError):
                save_sleep_timer_config(data_dir, SleepTimerConfig(last_duration_minutes=5))
