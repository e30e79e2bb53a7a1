from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Callable, List, Optional, Sequence, Tuple

from .debounce import Debouncer
from .grouping import group_tracks
from .search import SearchEngine
from .states import (
    OFFLINE_MESSAGE,
    LibraryError,
    LibraryInitial,
    LibraryLoaded,
    LibraryLoading,
    LibraryState,
)
from ..adapters.base import Track
from ..config import CrawlConfig
from ..engines.base import TrackEngine
from ..errors import ConnectivityLost
from ..utils.connectivity import ConnectivityMonitor

logger = logging.getLogger(__name__)

Listener = Callable[[LibraryState], None]


class LibraryController:
    """
    Single owner of the library view model.

    All commands run on one event loop, so the engine's corpus needs no
    lock of its own. ``_fetch_lock`` keeps the initial load, background
    rounds and load-more from ever running two engine fetches at once.
    """

    def __init__(
        self,
        engine: TrackEngine,
        config: CrawlConfig,
        search_engine: Optional[SearchEngine] = None,
        connectivity: Optional[ConnectivityMonitor] = None,
    ) -> None:
        self.engine = engine
        self.config = config
        self.search_engine = search_engine or SearchEngine()
        self.connectivity = connectivity
        self._state: LibraryState = LibraryInitial()
        self._listeners: List[Listener] = []
        self._fetch_lock = asyncio.Lock()
        self._debouncer = Debouncer(config.search_debounce)
        self._search_generation = 0
        self._background: Optional[asyncio.Task[None]] = None

    # ---- Observation --------------------------------------------------------

    @property
    def state(self) -> LibraryState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, state: LibraryState) -> None:
        self._state = state
        logger.debug("Library state -> %s", state.name)
        for listener in list(self._listeners):
            listener(state)

    # ---- Commands -----------------------------------------------------------

    async def load(self) -> None:
        """Initial bulk fetch, then background continuation rounds."""
        self._cancel_background()
        self._debouncer.cancel()
        self._search_generation += 1
        self._emit(LibraryLoading())

        if self.connectivity is not None and self.connectivity.is_online is False:
            self._emit(LibraryError(message=OFFLINE_MESSAGE, is_offline=True))
            return

        try:
            async with self._fetch_lock:
                await self.engine.fetch_bulk(self.config.initial_pages)
        except ConnectivityLost as exc:
            logger.warning("Initial load stopped: %s", exc.message)
            self._emit(LibraryError(message=exc.message, is_offline=True))
            return
        except Exception as exc:
            logger.exception("Initial load failed")
            self._emit(LibraryError(message=str(exc)))
            return

        tracks = self.engine.all_tracks
        self._emit(
            LibraryLoaded(
                all_tracks=tracks,
                display_tracks=tracks,
                grouped_tracks=group_tracks(tracks),
                has_more=self.engine.has_more,
                total_loaded=self.engine.total_tracks,
            )
        )
        logger.info("Initial load: %s tracks", self.engine.total_tracks)

        if self.engine.has_more and self.config.background_rounds > 0:
            # A concurrent load may have started its own rounds meanwhile.
            self._cancel_background()
            self._background = asyncio.get_running_loop().create_task(self._continue_loading())

    async def load_more(self) -> None:
        state = self._state
        if (
            not isinstance(state, LibraryLoaded)
            or state.is_loading_more
            or not state.has_more
            or self._fetch_lock.locked()
        ):
            return

        async with self._fetch_lock:
            self._emit(replace(state, is_loading_more=True))
            try:
                await self.engine.fetch_bulk(self.config.load_more_pages)
            except ConnectivityLost as exc:
                logger.warning("Load more stopped: %s", exc.message)
                self._finish_loading_more()
                return
            except Exception:
                logger.exception("Load more failed")
                self._finish_loading_more()
                return

            # A search may settle while the filter runs; re-filter until the
            # result matches the query it will be shown under.
            while True:
                current = self._state
                if not isinstance(current, LibraryLoaded):
                    return
                query = current.search_query
                tracks, display, total = await self._filtered_snapshot(query)
                current = self._state
                if not isinstance(current, LibraryLoaded):
                    return
                if current.search_query == query:
                    break
            self._emit(
                replace(
                    current,
                    all_tracks=tracks,
                    display_tracks=display,
                    grouped_tracks=group_tracks(display),
                    is_loading_more=False,
                    has_more=self.engine.has_more,
                    total_loaded=total,
                )
            )

    async def search(self, query: str) -> None:
        """Debounced: only the last query of a quiet window runs a filter pass."""
        if not isinstance(self._state, LibraryLoaded):
            return
        self._search_generation += 1
        generation = self._search_generation
        self._debouncer.schedule(lambda: self._run_search(query, generation))

    async def clear_search(self) -> None:
        self._debouncer.cancel()
        self._search_generation += 1
        state = self._state
        if not isinstance(state, LibraryLoaded):
            return
        tracks = self.engine.all_tracks
        self._emit(
            replace(
                state,
                all_tracks=tracks,
                display_tracks=tracks,
                grouped_tracks=group_tracks(tracks),
                search_query="",
                has_more=self.engine.has_more,
                total_loaded=self.engine.total_tracks,
            )
        )

    async def retry(self) -> None:
        if isinstance(self._state, LibraryError):
            await self.load()

    async def join(self) -> None:
        """Wait for background continuation rounds to finish."""
        task = self._background
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def wait_for_search(self) -> None:
        await self._debouncer.wait()

    async def close(self) -> None:
        self._debouncer.cancel()
        task = self._background
        self._cancel_background()
        if task is not None:
            await asyncio.wait({task})
        self.search_engine.close()

    # ---- Internals ----------------------------------------------------------

    async def _continue_loading(self) -> None:
        cfg = self.config
        for round_no in range(1, cfg.background_rounds + 1):
            if not self.engine.has_more:
                break
            try:
                async with self._fetch_lock:
                    await self.engine.fetch_bulk(cfg.background_pages)
            except ConnectivityLost as exc:
                logger.warning("Background loading stopped in round %s: %s", round_no, exc.message)
                self._emit(LibraryError(message=exc.message, is_offline=True))
                return
            except Exception:
                logger.exception("Background round %s failed", round_no)
                return

            state = self._state
            # An active search pins the displayed set; see DESIGN.md.
            if isinstance(state, LibraryLoaded) and not state.search_query:
                tracks = self.engine.all_tracks
                self._emit(
                    replace(
                        state,
                        all_tracks=tracks,
                        display_tracks=tracks,
                        grouped_tracks=group_tracks(tracks),
                        has_more=self.engine.has_more,
                        total_loaded=self.engine.total_tracks,
                    )
                )
        logger.info("Background loading done: %s tracks", self.engine.total_tracks)

    async def _run_search(self, query: str, generation: int) -> None:
        query = query.strip()
        if not isinstance(self._state, LibraryLoaded):
            return
        tracks, display, total = await self._filtered_snapshot(query)
        current = self._state
        if generation != self._search_generation or not isinstance(current, LibraryLoaded):
            return
        self._emit(
            replace(
                current,
                all_tracks=tracks,
                display_tracks=display,
                grouped_tracks=group_tracks(display),
                search_query=query,
                has_more=self.engine.has_more,
                total_loaded=total,
            )
        )

    async def _filtered_snapshot(self, query: str) -> Tuple[List[Track], Sequence[Track], int]:
        """Filter the corpus, starting over if it grew while the pass ran."""
        while True:
            total = self.engine.total_tracks
            tracks = self.engine.all_tracks
            display = await self.search_engine.search(tracks, query)
            if self.engine.total_tracks == total:
                return tracks, display, total

    def _finish_loading_more(self) -> None:
        current = self._state
        if isinstance(current, LibraryLoaded):
            self._emit(replace(current, is_loading_more=False))

    def _cancel_background(self) -> None:
        if self._background is not None and not self._background.done():
            self._background.cancel()
        self._background = None
