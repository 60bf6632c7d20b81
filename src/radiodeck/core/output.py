"""
Logging setup using Loguru.

The engine never prints; the host application owns the terminal, so
logs go to a rotating file only.
"""

import threading
from pathlib import Path

from loguru import logger

from .config import Config

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}"

_setup_lock = threading.Lock()
_handler_id: int | None = None


def get_log_file_path(config: Config) -> Path:
    """Get the path to the log file."""
    if config.logging.log_file:
        return Path(config.logging.log_file)
    return config.resolved_data_dir() / "radiodeck.log"


def setup_loguru(log_file: Path, level: str = "INFO") -> None:
    """
    Configure loguru for file-only logging.

    Calling this again replaces the previous file sink.

    Args:
        log_file: Path to log file
        level: Minimum level for file logging (DEBUG, INFO, WARNING, ERROR)
    """
    global _handler_id
    log_file.parent.mkdir(parents=True, exist_ok=True)

    with _setup_lock:
        if _handler_id is None:
            # Remove default stderr handler
            logger.remove()
        else:
            logger.remove(_handler_id)

        _handler_id = logger.add(
            log_file,
            rotation="10 MB",
            retention=5,  # Keep 5 backup files
            level=level.upper(),
            format=LOG_FORMAT,
            enqueue=False,  # Synchronous writes (thread-safe but blocking)
        )

    logger.info(f"Loguru initialized: {log_file} (level={level})")


def teardown_loguru() -> None:
    """Remove the file sink installed by setup_loguru()."""
    global _handler_id
    with _setup_lock:
        if _handler_id is not None:
            logger.remove(_handler_id)
            _handler_id = None
