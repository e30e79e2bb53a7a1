from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from aiohttp import ClientSession

from .base import FetchStatus, Lyrics
from ..config import CrawlConfig
from ..utils.http import create_session, fetch_json
from ..utils.parsing import lyrics_from_json, pick_lyrics_candidate

logger = logging.getLogger(__name__)


class LrcLibLyricsSource:
    """
    Lyrics lookup against LRCLIB.

    The search endpoint matches loosely on title and artist, so it is tried
    first; ``get-cached`` needs the exact album and duration and is the fallback.
    """

    def __init__(
        self,
        base_url: str = "https://lrclib.net/api",
        *,
        timeout: float = 10.0,
        user_agent: Optional[str] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: CrawlConfig) -> "LrcLibLyricsSource":
        return cls(config.lyrics_base_url, timeout=config.lyrics_timeout, user_agent=config.user_agent)

    async def lookup(
        self,
        track_name: str,
        artist_name: str,
        album_name: str,
        duration: int,
    ) -> Optional[Lyrics]:
        found = await self._search(track_name, artist_name)
        if found is not None:
            return found
        return await self._get_cached(track_name, artist_name, album_name, duration)

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def _search(self, track_name: str, artist_name: str) -> Optional[Lyrics]:
        payload = await self._get("/search", {"track_name": track_name, "artist_name": artist_name})
        best = pick_lyrics_candidate(payload)
        return lyrics_from_json(best) if best is not None else None

    async def _get_cached(self, track_name: str, artist_name: str, album_name: str, duration: int) -> Optional[Lyrics]:
        payload = await self._get(
            "/get-cached",
            {
                "track_name": track_name,
                "artist_name": artist_name,
                "album_name": album_name,
                "duration": duration,
            },
        )
        if not isinstance(payload, dict):
            return None
        return lyrics_from_json(payload)

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        if self._session is None:
            self._session = create_session(self.user_agent)
            self._owns_session = True
        result = await fetch_json(self._session, f"{self.base_url}{path}", params=params, timeout=self.timeout)
        result.raise_for_fatal()
        if result.status is FetchStatus.EMPTY:
            logger.debug("lyrics %s returned nothing: %s", path, result.reason)
            return None
        return result.value
