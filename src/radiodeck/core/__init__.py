"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML + .env)
- Logging setup (Loguru)
- Exception hierarchy
- Debounced atomic JSON persistence

Clean architecture principle: The core layer has no dependencies on
the domain layer.
"""

# Configuration
from .config import (
    Config,
    ConnectionConfig,
    LoggingConfig,
    PlayerConfig,
    ShuffleConfig,
    StorageConfig,
    create_default_config,
    ensure_directories,
    get_config_dir,
    get_config_path,
    get_data_dir,
    load_config,
)

# Exceptions
from .exceptions import (
    IPCError,
    NotFoundError,
    NotPlayingError,
    PersistenceError,
    ProcessError,
    RadiodeckError,
    StationAlreadyBlockedError,
    StationNotBlockedError,
    ValidationError,
)

# Logging
from .output import get_log_file_path, setup_loguru, teardown_loguru

# Persistence
from .store import PersistentStore, write_json_atomic

__all__ = [
    # Configuration
    "Config",
    "ConnectionConfig",
    "LoggingConfig",
    "PlayerConfig",
    "ShuffleConfig",
    "StorageConfig",
    "create_default_config",
    "ensure_directories",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "load_config",
    # Exceptions
    "IPCError",
    "NotFoundError",
    "NotPlayingError",
    "PersistenceError",
    "ProcessError",
    "RadiodeckError",
    "StationAlreadyBlockedError",
    "StationNotBlockedError",
    "ValidationError",
    # Logging
    "get_log_file_path",
    "setup_loguru",
    "teardown_loguru",
    # Persistence
    "PersistentStore",
    "write_json_atomic",
]
