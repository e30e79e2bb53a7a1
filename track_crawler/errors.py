from __future__ import annotations


class ConnectivityLost(Exception):
    """Raised when a transport failure means the device is offline."""

    def __init__(self, message: str = "NO INTERNET CONNECTION") -> None:
        super().__init__(message)
        self.message = message


class SourceUnavailable(Exception):
    """A single source (page, playlist, radio, detail) produced nothing usable."""


class DetailNotFound(LookupError):
    def __init__(self, track_id: int) -> None:
        super().__init__(f"Track not found: {track_id}")
        self.track_id = track_id
