"""
Configuration management for radiodeck
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

VALID_SHUFFLE_INTERVALS = (1, 3, 5, 10, 15)
VALID_SHUFFLE_HISTORY_SIZES = (3, 5, 7, 10)


@dataclass
class PlayerConfig:
    """Configuration for the mpv decoder process."""

    mpv_path: str = "mpv"
    volume: int = 100
    socket_dir: Optional[str] = None  # Defaults to the system temp dir
    stop_timeout: float = 2.0  # Seconds to wait after SIGTERM before SIGKILL
    metadata_interval: float = 5.0  # Seconds between track title polls


@dataclass
class ConnectionConfig:
    """Network resilience flags passed to the decoder.

    This is the connection policy the player consults on every play().
    """

    auto_reconnect: bool = True
    reconnect_delay: int = 5  # Seconds, 1-30
    stream_buffer_mb: int = 50  # 0 disables the cache, otherwise 10-200

    def normalized(self) -> "ConnectionConfig":
        """Return a copy with every value clamped to its valid range."""
        delay = min(max(self.reconnect_delay, 1), 30)
        buffer_mb = self.stream_buffer_mb
        if buffer_mb < 0:
            buffer_mb = 0
        elif 0 < buffer_mb < 10:
            buffer_mb = 10
        elif buffer_mb > 200:
            buffer_mb = 200
        return ConnectionConfig(
            auto_reconnect=self.auto_reconnect,
            reconnect_delay=delay,
            stream_buffer_mb=buffer_mb,
        )


@dataclass
class ShuffleConfig:
    """Configuration for shuffle mode."""

    auto_advance: bool = False
    interval_minutes: int = 5
    remember_history: bool = True
    max_history: int = 5

    def validate(self) -> None:
        """Validate shuffle configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.interval_minutes not in VALID_SHUFFLE_INTERVALS:
            raise ValueError(
                f"Invalid interval_minutes: {self.interval_minutes}. "
                f"Valid values are: {VALID_SHUFFLE_INTERVALS}"
            )
        if self.max_history not in VALID_SHUFFLE_HISTORY_SIZES:
            raise ValueError(
                f"Invalid max_history: {self.max_history}. "
                f"Valid values are: {VALID_SHUFFLE_HISTORY_SIZES}"
            )


@dataclass
class StorageConfig:
    """Configuration for the persistent stores."""

    data_dir: Optional[str] = None  # Defaults to get_data_dir()
    save_interval: float = 5.0  # Debounce interval for background saves


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = None  # Default: <data dir>/radiodeck.log


@dataclass
class Config:
    """Main configuration object."""

    player: PlayerConfig = field(default_factory=PlayerConfig)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    shuffle: ShuffleConfig = field(default_factory=ShuffleConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def resolved_data_dir(self) -> Path:
        """Directory the stores write to."""
        if self.storage.data_dir:
            return Path(self.storage.data_dir).expanduser()
        return get_data_dir()


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "radiodeck"
    return Path.home() / ".config" / "radiodeck"


def get_config_path() -> Path:
    """Get the main configuration file path."""
    local_config = Path.cwd() / "radiodeck.toml"
    if local_config.exists():
        return local_config
    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "radiodeck"
    return Path.home() / ".local" / "share" / "radiodeck"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# radiodeck configuration

[player]
# mpv executable (name on PATH or absolute path)
mpv_path = "mpv"

# Default volume (0-100), used when a station has no volume override
volume = 100

# Directory for mpv IPC sockets (system temp dir if not specified)
# socket_dir = "/run/user/1000"

# Seconds to wait for mpv to exit before killing it
stop_timeout = 2.0

# Seconds between track title polls
metadata_interval = 5.0

[connection]
# Restart dropped streams
auto_reconnect = true

# Maximum reconnect delay in seconds (1-30)
reconnect_delay = 5

# Demuxer cache in MB (0 disables caching, otherwise 10-200)
stream_buffer_mb = 50

[shuffle]
# Automatically advance to the next station
auto_advance = false

# Minutes between auto-advance (1, 3, 5, 10 or 15)
interval_minutes = 5

# Keep a history for "previous station"
remember_history = true

# Number of stations to remember (3, 5, 7 or 10)
max_history = 5

[storage]
# Directory for ratings, tags, play statistics and the blocklist
# data_dir = "~/.local/share/radiodeck"

# Seconds between background saves
save_interval = 5.0

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/radiodeck/radiodeck.log)
# log_file = "/path/to/radiodeck.log"
""".strip()


def _parse_config(toml_data: dict) -> Config:
    config = Config()

    if "player" in toml_data:
        player_data = toml_data["player"]
        config.player = PlayerConfig(
            mpv_path=player_data.get("mpv_path", config.player.mpv_path),
            volume=min(max(int(player_data.get("volume", config.player.volume)), 0), 100),
            socket_dir=player_data.get("socket_dir"),
            stop_timeout=float(
                player_data.get("stop_timeout", config.player.stop_timeout)
            ),
            metadata_interval=float(
                player_data.get("metadata_interval", config.player.metadata_interval)
            ),
        )

    if "connection" in toml_data:
        connection_data = toml_data["connection"]
        config.connection = ConnectionConfig(
            auto_reconnect=connection_data.get(
                "auto_reconnect", config.connection.auto_reconnect
            ),
            reconnect_delay=connection_data.get(
                "reconnect_delay", config.connection.reconnect_delay
            ),
            stream_buffer_mb=connection_data.get(
                "stream_buffer_mb", config.connection.stream_buffer_mb
            ),
        ).normalized()

    if "shuffle" in toml_data:
        shuffle_data = toml_data["shuffle"]
        config.shuffle = ShuffleConfig(
            auto_advance=shuffle_data.get("auto_advance", config.shuffle.auto_advance),
            interval_minutes=shuffle_data.get(
                "interval_minutes", config.shuffle.interval_minutes
            ),
            remember_history=shuffle_data.get(
                "remember_history", config.shuffle.remember_history
            ),
            max_history=shuffle_data.get("max_history", config.shuffle.max_history),
        )
        try:
            config.shuffle.validate()
        except ValueError as e:
            logger.warning(f"Invalid shuffle configuration: {e}. Using defaults.")
            config.shuffle = ShuffleConfig()

    if "storage" in toml_data:
        storage_data = toml_data["storage"]
        data_dir = storage_data.get("data_dir")
        if data_dir:
            data_dir = str(Path(data_dir).expanduser())
        config.storage = StorageConfig(
            data_dir=data_dir,
            save_interval=float(
                storage_data.get("save_interval", config.storage.save_interval)
            ),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
        )

    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - RADIODECK_MPV_PATH
    - RADIODECK_DATA_DIR
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        logger.info(f"Created default configuration at: {config_path}")
        config = Config()
    else:
        try:
            with open(config_path, "rb") as f:
                config = _parse_config(tomllib.load(f))
        except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
            logger.warning(f"Error loading configuration from {config_path}: {e}")
            config = Config()

    mpv_path = os.environ.get("RADIODECK_MPV_PATH")
    if mpv_path:
        config.player.mpv_path = mpv_path

    data_dir = os.environ.get("RADIODECK_DATA_DIR")
    if data_dir:
        config.storage.data_dir = data_dir

    return config


def ensure_directories(config: Config) -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    config.resolved_data_dir().mkdir(parents=True, exist_ok=True)
