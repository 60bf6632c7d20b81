"""
Debounced, crash-safe JSON stores.

PersistentStore keeps keyed records in memory behind a lock and writes the
whole document to disk from a background thread when something changed.
Writes go to a sibling temp file which is fsynced and then renamed over the
target, so a crash mid-write never leaves a truncated file behind.
"""

import json
import os
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generic, Iterator, Optional, TypeVar

from loguru import logger

from .exceptions import PersistenceError

DEFAULT_SAVE_INTERVAL = 5.0

R = TypeVar("R")


def datetime_to_str(value: Optional[datetime]) -> Optional[str]:
    """Serialize a timestamp for a JSON document."""
    return value.isoformat() if value else None


def datetime_from_str(value: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp written by datetime_to_str()."""
    return datetime.fromisoformat(value) if value else None


def write_json_atomic(path: Path, document: Any) -> None:
    """Write a JSON document via temp file + fsync + rename.

    Raises:
        PersistenceError: If the directory, temp file or rename fails
    """
    path = Path(path)
    try:
        data = json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise PersistenceError(path, f"Failed to serialize {path.name}: {e}") from e

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}-", suffix=".tmp"
        )
    except OSError as e:
        raise PersistenceError(path, f"Failed to create temp file for {path}: {e}") from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass  # Temp file already gone
        raise PersistenceError(path, f"Failed to write {path}: {e}") from e


class PersistentStore(Generic[R]):
    """Keyed record map with debounced atomic persistence.

    Subclasses set ``filename`` and implement the record codec. Sections of
    the document that are not keyed records (caches, indexes, rule lists)
    go through ``_dump_extra`` / ``_load_extra``.

    Mutations must run inside ``with self._mutate():``. The store is marked
    dirty only when the block exits cleanly, so validation errors raised
    inside it leave nothing pending. Mutators never touch the disk; the
    flush thread and close() do.
    """

    filename: str = ""
    records_key: str = "records"
    version: int = 1

    def __init__(
        self,
        data_dir: Path,
        save_interval: float = DEFAULT_SAVE_INTERVAL,
        autostart: bool = True,
    ):
        if not self.filename:
            raise TypeError(f"{type(self).__name__} must define a filename")

        self.path = Path(data_dir) / self.filename
        self.save_interval = save_interval
        self._records: dict[str, R] = {}
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._pending = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

        try:
            self.load()
        except (OSError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Could not load {self.path}, starting empty: {e}")
            with self._lock:
                self._reset()

        if autostart:
            self.start()

    # ------------------------------------------------------------------
    # Record codec (subclass hooks)
    # ------------------------------------------------------------------

    def _record_to_dict(self, record: R) -> dict:
        raise NotImplementedError

    def _record_from_dict(self, data: dict) -> R:
        raise NotImplementedError

    def _dump_extra(self) -> dict:
        """Extra top-level sections to persist. Called with the lock held."""
        return {}

    def _load_extra(self, document: dict) -> None:
        """Restore extra sections. Called with the lock held."""
        pass

    def _reset_extra(self) -> None:
        """Clear extra sections. Called with the lock held."""
        pass

    def _reset(self) -> None:
        self._records = {}
        self._reset_extra()

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Replace in-memory state with the file contents.

        A missing file leaves the store empty. A file that cannot be parsed
        raises; the constructor absorbs that and starts empty.
        """
        with self._lock:
            if not self.path.exists():
                self._reset()
                logger.debug(f"No {self.filename} yet, starting empty")
                return

            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)

            if not isinstance(document, dict):
                raise ValueError(f"{self.filename} is not a JSON object")

            raw_records = document.get(self.records_key) or {}
            if not isinstance(raw_records, dict):
                raise ValueError(f"{self.filename}: '{self.records_key}' is not a mapping")

            records = {
                str(key): self._record_from_dict(value)
                for key, value in raw_records.items()
            }
            self._reset()
            self._records = records
            self._load_extra(document)

        logger.info(f"Loaded {len(records)} records from {self.path}")

    def _snapshot(self) -> dict:
        with self._lock:
            document = {
                "version": self.version,
                self.records_key: {
                    key: self._record_to_dict(record)
                    for key, record in self._records.items()
                },
            }
            document.update(self._dump_extra())
        return document

    def save(self) -> None:
        """Write the full document to disk now.

        Raises:
            PersistenceError: If the write fails
        """
        with self._save_lock:
            write_json_atomic(self.path, self._snapshot())
        logger.debug(f"Saved {self.path}")

    # ------------------------------------------------------------------
    # Dirty tracking
    # ------------------------------------------------------------------

    @contextmanager
    def _mutate(self) -> Iterator[None]:
        with self._lock:
            yield
            self._mark_pending()
            if self._closed:
                logger.warning(
                    f"{type(self).__name__} changed after close(); "
                    f"not saved to {self.path} unless save() is called"
                )

    def _mark_pending(self) -> None:
        with self._pending_lock:
            self._pending = True

    def _take_pending(self) -> bool:
        with self._pending_lock:
            pending = self._pending
            self._pending = False
            return pending

    @property
    def has_pending_changes(self) -> bool:
        with self._pending_lock:
            return self._pending

    # ------------------------------------------------------------------
    # Background flush
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background flush thread (no-op if already running)."""
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._flush_loop,
            name=f"{type(self).__name__}-flush",
            daemon=True,
        )
        self._thread.start()

    def _flush_loop(self) -> None:
        while not self._stop_event.wait(self.save_interval):
            self.flush_pending()

    def flush_pending(self) -> bool:
        """Save if there are pending changes; re-arm the flag on failure.

        Returns:
            True if a save was attempted and succeeded
        """
        if not self._take_pending():
            return False
        try:
            self.save()
        except PersistenceError as e:
            # Next tick retries
            self._mark_pending()
            logger.warning(f"Background save of {self.path} failed: {e}")
            return False
        return True

    def close(self) -> None:
        """Stop the flush thread and write any pending changes.

        Raises:
            PersistenceError: If the final save fails
        """
        if self._closed:
            return
        self._closed = True

        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join()
        self._thread = None

        if self.has_pending_changes:
            self._take_pending()
            try:
                self.save()
            except PersistenceError:
                self._mark_pending()
                raise

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
