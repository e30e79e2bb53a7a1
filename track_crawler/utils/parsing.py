from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from ..adapters.base import Lyrics, Track, TrackDetails


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def track_from_json(item: Any) -> Optional[Track]:
    """
    Build a Track from a catalog track object.
    Items without a usable integer id are skipped (None).
    """
    if not isinstance(item, dict):
        return None
    track_id = item.get("id")
    if not isinstance(track_id, int) or isinstance(track_id, bool):
        return None

    artist = _as_dict(item.get("artist"))
    album = _as_dict(item.get("album"))
    return Track(
        id=track_id,
        title=_str(item.get("title"), "Unknown"),
        artist_name=_str(artist.get("name"), "Unknown Artist"),
        album_title=_str(album.get("title"), "Unknown Album"),
        cover_small=_str(album.get("cover_small")),
        cover_medium=_str(album.get("cover_medium")),
        duration=_int(item.get("duration")),
    )


def tracks_from_page(payload: Any) -> List[Track]:
    """Extract tracks from a ``{"data": [...]}`` page payload."""
    data = _as_dict(payload).get("data")
    if not isinstance(data, list):
        return []
    return [t for t in (track_from_json(item) for item in data) if t is not None]


def details_from_json(payload: Dict[str, Any]) -> TrackDetails:
    artist = _as_dict(payload.get("artist"))
    album = _as_dict(payload.get("album"))
    contributors = _names(payload.get("contributors"))
    gain = payload.get("gain")

    return TrackDetails(
        id=_int(payload.get("id")),
        title=_str(payload.get("title"), "Unknown"),
        artist_name=_str(artist.get("name"), "Unknown Artist"),
        album_title=_str(album.get("title"), "Unknown Album"),
        cover_big=_str(album.get("cover_big")) or _str(album.get("cover_medium")),
        duration=_int(payload.get("duration")),
        release_date=_str(payload.get("release_date")),
        preview_url=_str(payload.get("preview")),
        track_position=_int(payload.get("track_position")),
        disk_number=_int(payload.get("disk_number")),
        bpm=_int(payload.get("bpm")),
        gain=float(gain) if isinstance(gain, (int, float)) and not isinstance(gain, bool) else 0.0,
        contributors=tuple(contributors),
    )


def _names(raw: Any) -> Iterable[str]:
    if not isinstance(raw, list):
        return []
    names = (_str(_as_dict(c).get("name")) for c in raw)
    return [n for n in names if n]


def lyrics_from_json(payload: Dict[str, Any]) -> Lyrics:
    return Lyrics(
        track_name=_str(payload.get("trackName")),
        artist_name=_str(payload.get("artistName")),
        plain=payload.get("plainLyrics") if isinstance(payload.get("plainLyrics"), str) else None,
        synced=payload.get("syncedLyrics") if isinstance(payload.get("syncedLyrics"), str) else None,
    )


def pick_lyrics_candidate(candidates: Any) -> Optional[Dict[str, Any]]:
    """
    Prefer the first candidate carrying plain lyrics, else the first one.
    """
    if not isinstance(candidates, list):
        return None
    items = [c for c in candidates if isinstance(c, dict)]
    if not items:
        return None
    for item in items:
        if _str(item.get("plainLyrics")):
            return item
    return items[0]
