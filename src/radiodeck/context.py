"""Engine context for explicit state passing.

EngineContext owns every long-lived engine object: the four persistent
stores, the player and the timers. The host application creates one at
startup, passes it to whatever needs it, and closes it on exit so pending
store changes are flushed to disk.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

from radiodeck.core.config import Config, ensure_directories
from radiodeck.core.exceptions import PersistenceError, ProcessError
from radiodeck.core.output import get_log_file_path, setup_loguru
from radiodeck.domain.blocklist import BlocklistManager
from radiodeck.domain.metadata import MetadataManager
from radiodeck.domain.playback import PlayerController
from radiodeck.domain.ratings import RatingsManager
from radiodeck.domain.shuffle import ShuffleManager
from radiodeck.domain.tags import TagsManager
from radiodeck.domain.timer import SleepTimer


@dataclass
class EngineContext:
    """Everything the host application needs to drive playback.

    Attributes:
        config: Configuration the engine was built from
        ratings: Station star ratings
        tags: Custom tags and tag playlists
        metadata: Play statistics, fed by the player
        blocklist: Blocked stations and block rules
        player: mpv player controller
        sleep_timer: Countdown that stops the player when it expires
        shuffle: Shuffle session state
    """

    config: Config
    ratings: RatingsManager
    tags: TagsManager
    metadata: MetadataManager
    blocklist: BlocklistManager
    player: PlayerController
    sleep_timer: SleepTimer
    shuffle: ShuffleManager
    _closed: bool = field(default=False, repr=False)

    @classmethod
    def create(cls, config: Optional[Config] = None, setup_logging: bool = True) -> "EngineContext":
        """Open the stores and build the player.

        Args:
            config: Engine configuration (defaults if None)
            setup_logging: Install the rotating log file sink

        Returns:
            Ready-to-use context
        """
        config = config or Config()
        ensure_directories(config)
        data_dir = config.resolved_data_dir()

        if setup_logging:
            setup_loguru(get_log_file_path(config), config.logging.level)

        interval = config.storage.save_interval
        metadata = MetadataManager(data_dir, save_interval=interval)
        player = PlayerController(
            config.player, config.connection, metadata_manager=metadata
        )

        def on_sleep_timer_expired() -> None:
            try:
                player.stop()
            except ProcessError as e:
                logger.error(f"Sleep timer could not stop playback: {e}")

        context = cls(
            config=config,
            ratings=RatingsManager(data_dir, save_interval=interval),
            tags=TagsManager(data_dir, save_interval=interval),
            metadata=metadata,
            blocklist=BlocklistManager(data_dir, save_interval=interval),
            player=player,
            sleep_timer=SleepTimer(on_sleep_timer_expired),
            shuffle=ShuffleManager(config.shuffle),
        )
        logger.info(f"Engine ready (data dir: {data_dir})")
        return context

    @property
    def data_dir(self) -> Path:
        return self.config.resolved_data_dir()

    def close(self) -> None:
        """Stop playback and timers, then flush and close every store.

        All stores are closed even if one fails.

        Raises:
            PersistenceError: The first store failure, after all were attempted
        """
        if self._closed:
            return
        self._closed = True

        self.sleep_timer.cancel()
        self.shuffle.stop()
        try:
            self.player.stop()
        except ProcessError as e:
            logger.error(f"Failed to stop playback on close: {e}")

        first_error: Optional[PersistenceError] = None
        for store in (self.ratings, self.tags, self.metadata, self.blocklist):
            try:
                store.close()
            except PersistenceError as e:
                logger.error(f"Failed to save {store.path} on close: {e}")
                if first_error is None:
                    first_error = e

        logger.info("Engine closed")
        if first_error is not None:
            raise first_error

    def __enter__(self) -> "EngineContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
