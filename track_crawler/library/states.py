from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..adapters.base import Lyrics, Track, TrackDetails

OFFLINE_MESSAGE = "NO INTERNET CONNECTION"


# ---- Library --------------------------------------------------------------

@dataclass(frozen=True)
class LibraryState:
    name = "base"

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.name}


@dataclass(frozen=True)
class LibraryInitial(LibraryState):
    name = "initial"


@dataclass(frozen=True)
class LibraryLoading(LibraryState):
    name = "loading"


@dataclass(frozen=True)
class LibraryLoaded(LibraryState):
    """Everything the presentation layer needs to render the grouped list."""

    name = "loaded"

    all_tracks: Sequence[Track] = ()
    display_tracks: Sequence[Track] = ()
    grouped_tracks: Dict[str, List[Track]] = field(default_factory=dict)
    is_loading_more: bool = False
    has_more: bool = True
    search_query: str = ""
    total_loaded: int = 0

    def to_dict(self, include_tracks: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "state": self.name,
            "is_loading_more": self.is_loading_more,
            "has_more": self.has_more,
            "search_query": self.search_query,
            "total_loaded": self.total_loaded,
            "display_count": len(self.display_tracks),
            "groups": {key: len(members) for key, members in self.grouped_tracks.items()},
        }
        if include_tracks:
            data["grouped_tracks"] = {
                key: [t.to_dict() for t in members] for key, members in self.grouped_tracks.items()
            }
        return data


@dataclass(frozen=True)
class LibraryError(LibraryState):
    name = "error"

    message: str = ""
    is_offline: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.name, "message": self.message, "is_offline": self.is_offline}


# ---- Track details --------------------------------------------------------

@dataclass(frozen=True)
class DetailsState:
    name = "base"

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.name}


@dataclass(frozen=True)
class DetailsInitial(DetailsState):
    name = "initial"


@dataclass(frozen=True)
class DetailsLoading(DetailsState):
    name = "loading"


@dataclass(frozen=True)
class DetailsLoaded(DetailsState):
    name = "loaded"

    details: Optional[TrackDetails] = None
    lyrics: Optional[Lyrics] = None
    is_loading_lyrics: bool = False
    lyrics_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.name,
            "details": self.details.to_dict() if self.details else None,
            "lyrics": self.lyrics.to_dict() if self.lyrics else None,
            "is_loading_lyrics": self.is_loading_lyrics,
            "lyrics_error": self.lyrics_error,
        }


@dataclass(frozen=True)
class DetailsError(DetailsState):
    name = "error"

    message: str = ""
    is_offline: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.name, "message": self.message, "is_offline": self.is_offline}
