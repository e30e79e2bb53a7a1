from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Protocol, Tuple, TypeVar

from ..errors import ConnectivityLost

T = TypeVar("T")

SENTINEL_GROUP = "#"

_LETTER = re.compile(r"[A-Z]")
_TIMECODE = re.compile(r"\[\d+:\d+\.\d+\]")


class FetchStatus(enum.Enum):
    OK = "ok"
    EMPTY = "empty"
    FATAL = "fatal"


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """
    Outcome of one remote call.

    OK carries a value, EMPTY means the source produced nothing (including
    non-fatal failures, with a reason), FATAL carries the connectivity error
    that the caller must propagate.
    """

    status: FetchStatus
    value: Optional[T] = None
    reason: Optional[str] = None
    error: Optional[ConnectivityLost] = None

    @classmethod
    def ok(cls, value: T) -> "FetchResult[T]":
        return cls(FetchStatus.OK, value=value)

    @classmethod
    def empty(cls, reason: str = "no data") -> "FetchResult[T]":
        return cls(FetchStatus.EMPTY, reason=reason)

    @classmethod
    def fatal(cls, error: ConnectivityLost) -> "FetchResult[T]":
        return cls(FetchStatus.FATAL, error=error, reason=str(error))

    def raise_for_fatal(self) -> None:
        if self.status is FetchStatus.FATAL:
            raise self.error or ConnectivityLost()

    def map(self, fn) -> "FetchResult[Any]":
        if self.status is FetchStatus.OK:
            return FetchResult.ok(fn(self.value))
        return self  # type: ignore[return-value]


@dataclass(frozen=True)
class Track:
    """Lightweight catalog record; identity is ``id``."""

    id: int
    title: str
    artist_name: str
    album_title: str
    cover_small: str = ""
    cover_medium: str = ""
    duration: int = 0

    @property
    def group_key(self) -> str:
        if not self.title:
            return SENTINEL_GROUP
        first = self.title[0].upper()
        return first if _LETTER.fullmatch(first) else SENTINEL_GROUP

    def matches(self, query: str) -> bool:
        needle = query.lower()
        return (
            needle in self.title.lower()
            or needle in self.artist_name.lower()
            or needle in self.album_title.lower()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist_name,
            "album": self.album_title,
            "cover_small": self.cover_small,
            "cover_medium": self.cover_medium,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class TrackDetails:
    """Full record from the detail endpoint, or rebuilt from a ``Track``."""

    id: int
    title: str
    artist_name: str
    album_title: str
    cover_big: str = ""
    duration: int = 0
    release_date: str = ""
    preview_url: str = ""
    track_position: int = 0
    disk_number: int = 0
    bpm: int = 0
    gain: float = 0.0
    contributors: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_track(cls, track: Track) -> "TrackDetails":
        return cls(
            id=track.id,
            title=track.title,
            artist_name=track.artist_name,
            album_title=track.album_title,
            cover_big=track.cover_medium,
            duration=track.duration,
        )

    @property
    def formatted_duration(self) -> str:
        minutes, seconds = divmod(max(self.duration, 0), 60)
        return f"{minutes}:{seconds:02d}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist_name,
            "album": self.album_title,
            "cover_big": self.cover_big,
            "duration": self.duration,
            "formatted_duration": self.formatted_duration,
            "release_date": self.release_date,
            "preview_url": self.preview_url,
            "track_position": self.track_position,
            "disk_number": self.disk_number,
            "bpm": self.bpm,
            "gain": self.gain,
            "contributors": list(self.contributors),
        }


@dataclass(frozen=True)
class Lyrics:
    track_name: str
    artist_name: str
    plain: Optional[str] = None
    synced: Optional[str] = None

    @property
    def has_lyrics(self) -> bool:
        return bool(self.plain) or bool(self.synced)

    @property
    def display_lyrics(self) -> str:
        if self.plain:
            return self.plain
        if self.synced:
            lines = (_TIMECODE.sub("", line).strip() for line in self.synced.split("\n"))
            return "\n".join(line for line in lines if line)
        return ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "track_name": self.track_name,
            "artist_name": self.artist_name,
            "plain": self.plain,
            "synced": self.synced,
            "display": self.display_lyrics,
        }


class CatalogSource(Protocol):
    """
    Port over a remote track catalog.
    Paged calls never raise for source trouble; they return a FetchResult.
    """

    name: str

    async def search(self, term: str, offset: int, limit: int) -> FetchResult[List[Track]]:
        ...

    async def collection_page(self, collection_id: int, offset: int, limit: int) -> FetchResult[List[Track]]:
        ...

    async def collection_batch(self, collection_id: int) -> FetchResult[List[Track]]:
        ...

    async def detail(self, track_id: int) -> TrackDetails:
        """Raises DetailNotFound, ConnectivityLost or SourceUnavailable."""
        ...

    async def close(self) -> None:
        ...


class LyricsSource(Protocol):
    async def lookup(
        self,
        track_name: str,
        artist_name: str,
        album_name: str,
        duration: int,
    ) -> Optional[Lyrics]:
        """Return lyrics, or None when nothing matched. Raises ConnectivityLost only."""
        ...

    async def close(self) -> None:
        ...
