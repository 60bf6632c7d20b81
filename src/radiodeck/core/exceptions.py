"""Exception hierarchy shared by the playback engine and the persistent stores."""


class RadiodeckError(Exception):
    """Base exception for radiodeck operations."""

    pass


class ProcessError(RadiodeckError):
    """Raised when the decoder process cannot be located, started or stopped."""

    pass


class IPCError(RadiodeckError):
    """Raised when the decoder IPC channel is unavailable or misbehaves.

    Playback continues without IPC; callers may ignore this error.
    """

    pass


class NotPlayingError(IPCError):
    """Raised when an operation needs an active playback session."""

    def __init__(self, message: str = None):
        super().__init__(message or "not playing")


class PersistenceError(RadiodeckError):
    """Raised when an explicit save or close cannot write to disk."""

    def __init__(self, path, message: str = None):
        self.path = path
        super().__init__(message or f"Failed to save {path}")


class ValidationError(RadiodeckError, ValueError):
    """Raised when input is rejected before a store is modified."""

    pass


class StationAlreadyBlockedError(ValidationError):
    """Raised when blocking a station that is already blocked."""

    def __init__(self, station_uuid: str):
        self.station_uuid = station_uuid
        super().__init__(f"Station {station_uuid} is already blocked")


class NotFoundError(RadiodeckError, LookupError):
    """Raised when an operation targets a key that does not exist."""

    pass


class StationNotBlockedError(NotFoundError):
    """Raised when unblocking a station that is not blocked."""

    def __init__(self, station_uuid: str):
        self.station_uuid = station_uuid
        super().__init__(f"Station {station_uuid} is not blocked")
