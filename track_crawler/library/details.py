from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, List, Optional

from .states import (
    DetailsError,
    DetailsInitial,
    DetailsLoaded,
    DetailsLoading,
    DetailsState,
)
from ..adapters.base import CatalogSource, LyricsSource, Track, TrackDetails
from ..config import CrawlConfig
from ..engines.synthesis import is_synthetic_id
from ..errors import ConnectivityLost, DetailNotFound, SourceUnavailable

logger = logging.getLogger(__name__)

LYRICS_ERROR = "Could not load lyrics"

Listener = Callable[[DetailsState], None]


class TrackDetailsController:
    """
    Details view for one track: metadata first, lyrics second.

    Synthetic tracks never hit the catalog; their details are rebuilt from
    the library record. Missing lyrics are a normal outcome.
    """

    def __init__(self, source: CatalogSource, lyrics: LyricsSource, config: CrawlConfig) -> None:
        self.source = source
        self.lyrics = lyrics
        self.config = config
        self._state: DetailsState = DetailsInitial()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> DetailsState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, state: DetailsState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    async def fetch(self, track: Track) -> DetailsState:
        return await self._fetch(track.id, track)

    async def fetch_by_id(self, track_id: int) -> DetailsState:
        """
        Details for a bare id. With no library record to rebuild from,
        synthetic ids are unknown and an unavailable source is an error.
        """
        return await self._fetch(track_id, None)

    async def _fetch(self, track_id: int, record: Optional[Track]) -> DetailsState:
        self._emit(DetailsLoading())

        try:
            details = await self._details(track_id, record)
        except ConnectivityLost as exc:
            self._emit(DetailsError(message=exc.message, is_offline=True))
            return self._state
        except DetailNotFound as exc:
            logger.info("Details missing for track %s", exc.track_id)
            self._emit(DetailsError(message=str(exc)))
            return self._state
        except SourceUnavailable as exc:
            logger.info("Details unavailable for track %s: %s", track_id, exc)
            self._emit(DetailsError(message=str(exc)))
            return self._state

        loaded = DetailsLoaded(details=details, is_loading_lyrics=True)
        self._emit(loaded)

        try:
            found = await self.lyrics.lookup(
                track_name=details.title,
                artist_name=details.artist_name,
                album_name=details.album_title,
                duration=details.duration,
            )
        except Exception as exc:
            logger.warning("Lyrics lookup failed for track %s: %r", details.id, exc)
            self._emit(replace(loaded, is_loading_lyrics=False, lyrics_error=LYRICS_ERROR))
        else:
            self._emit(replace(loaded, lyrics=found, is_loading_lyrics=False))
        return self._state

    async def _details(self, track_id: int, record: Optional[Track]) -> TrackDetails:
        if is_synthetic_id(track_id, self.config.synthetic_id_base):
            if record is None:
                raise DetailNotFound(track_id)
            return TrackDetails.from_track(record)
        try:
            return await self.source.detail(track_id)
        except SourceUnavailable as exc:
            if record is None:
                raise
            logger.debug("Detail source failed for %s (%s); using library record", track_id, exc)
            return TrackDetails.from_track(record)
