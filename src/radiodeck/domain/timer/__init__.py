"""Sleep timer, sleep session log and the persisted timer preference."""

from .preferences import (
    SleepTimerConfig,
    get_sleep_timer_path,
    load_sleep_timer_config,
    save_sleep_timer_config,
)
from .sleep_session import SessionEntry, SleepSession
from .sleep_timer import SleepTimer

__all__ = [
    "SessionEntry",
    "SleepSession",
    "SleepTimer",
    "SleepTimerConfig",
    "get_sleep_timer_path",
    "load_sleep_timer_config",
    "save_sleep_timer_config",
]
