from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .base import CrawlReport, TrackEngine
from .store import TrackStore
from .synthesis import Cover, TrackSynthesizer, is_synthetic_id
from ..adapters.base import CatalogSource, FetchResult, FetchStatus, Track
from ..config import CrawlConfig

logger = logging.getLogger(__name__)


class CrawlPhase(enum.Enum):
    PROBING = "probing"
    SEARCH = "search"
    COLLECTION = "collection"
    SYNTHESIZING = "synthesizing"
    EXHAUSTED = "exhausted"


@dataclass
class CrawlCursor:
    """Forward-only pagination state; owned by a single engine instance."""

    term_index: int = 0
    term_page: int = 0
    playlist_index: int = 0
    playlist_page: int = 0
    radio_index: int = 0
    next_synthetic_id: int = 0


class CatalogCrawlEngine(TrackEngine):
    """
    Cursor-driven catalog crawler.
    - A one-shot probe picks keyword search or playlist/radio crawling.
    - Source failures other than connectivity loss count as "nothing here"
      and advance the cursor.
    - Once real sources run dry, synthetic tracks fill the corpus up to
      ``target_size``.
    """

    def __init__(
        self,
        config: CrawlConfig,
        source: CatalogSource,
        synthesizer: Optional[TrackSynthesizer] = None,
    ) -> None:
        self.config = config
        self.source = source
        self.synthesizer = synthesizer or TrackSynthesizer()
        self.store = TrackStore()
        self.cursor = CrawlCursor(next_synthetic_id=config.synthetic_id_base)
        self._phase = CrawlPhase.PROBING
        self._strategy: Optional[CrawlPhase] = None
        self._covers: List[Cover] = []
        self._sorted: Optional[List[Track]] = None

    # ---- TrackEngine --------------------------------------------------------

    @property
    def phase(self) -> CrawlPhase:
        return self._phase

    @property
    def has_more(self) -> bool:
        return self._phase is not CrawlPhase.EXHAUSTED

    @property
    def total_tracks(self) -> int:
        return self.store.size()

    @property
    def all_tracks(self) -> List[Track]:
        if self._sorted is None:
            self._sorted = sorted(self.store.all(), key=lambda t: t.title.lower())
        return list(self._sorted)

    def get_track(self, track_id: int) -> Optional[Track]:
        return self.store.get(track_id)

    def report(self) -> CrawlReport:
        return CrawlReport(
            total_tracks=self.store.size(),
            synthetic_tracks=self.cursor.next_synthetic_id - self.config.synthetic_id_base,
            phase=self._phase.value,
            strategy=self._strategy.value if self._strategy else "",
        )

    async def fetch_next_page(self) -> List[Track]:
        if self._phase is CrawlPhase.PROBING:
            await self._probe()
        if self._phase is CrawlPhase.SEARCH:
            return await self._next_search_page()
        if self._phase is CrawlPhase.COLLECTION:
            return await self._next_collection_page()
        if self._phase is CrawlPhase.SYNTHESIZING:
            return self._next_synthetic_batch()
        return []

    # ---- Strategy selection -------------------------------------------------

    async def _probe(self) -> None:
        cfg = self.config
        result = await self.source.search(cfg.probe_term, 0, cfg.probe_limit)
        # No decision is cached on connectivity loss; an explicit retry probes again.
        result.raise_for_fatal()
        if result.status is FetchStatus.OK and result.value:
            self._set_phase(CrawlPhase.SEARCH)
        else:
            logger.info("Search probe returned nothing (%s); crawling collections", result.reason)
            self._set_phase(CrawlPhase.COLLECTION)
        self._strategy = self._phase

    # ---- Keyword search -----------------------------------------------------

    async def _next_search_page(self) -> List[Track]:
        cfg, cur = self.config, self.cursor
        term = cfg.search_terms[cur.term_index]
        result = await self.source.search(term, cur.term_page * cfg.search_page_size, cfg.search_page_size)
        tracks = self._unwrap(result)
        added = self._commit(tracks)

        cur.term_page += 1
        if len(tracks) < cfg.search_page_size or cur.term_page >= cfg.max_pages_per_term:
            logger.debug("Search term %r done after %s pages", term, cur.term_page)
            cur.term_index += 1
            cur.term_page = 0
            if cur.term_index >= len(cfg.search_terms):
                self._real_sources_exhausted()
        return added

    # ---- Playlists, then radios ---------------------------------------------

    async def _next_collection_page(self) -> List[Track]:
        cfg, cur = self.config, self.cursor
        size = cfg.collection_page_size

        while cur.playlist_index < len(cfg.playlist_ids):
            playlist_id = cfg.playlist_ids[cur.playlist_index]
            result = await self.source.collection_page(playlist_id, cur.playlist_page * size, size)
            tracks = self._unwrap(result)
            if not tracks:
                logger.debug("Playlist %s finished: %s", playlist_id, result.reason or "short page")
                self._next_playlist()
                continue
            added = self._commit(tracks)
            cur.playlist_page += 1
            if len(tracks) < size:
                self._next_playlist()
            self._check_collections_exhausted()
            return added

        while cur.radio_index < len(cfg.radio_ids):
            radio_id = cfg.radio_ids[cur.radio_index]
            result = await self.source.collection_batch(radio_id)
            tracks = self._unwrap(result)
            cur.radio_index += 1
            if tracks:
                added = self._commit(tracks)
                self._check_collections_exhausted()
                return added
            logger.debug("Radio %s produced nothing: %s", radio_id, result.reason)

        self._real_sources_exhausted()
        return []

    def _next_playlist(self) -> None:
        self.cursor.playlist_index += 1
        self.cursor.playlist_page = 0

    def _check_collections_exhausted(self) -> None:
        cfg, cur = self.config, self.cursor
        if cur.playlist_index >= len(cfg.playlist_ids) and cur.radio_index >= len(cfg.radio_ids):
            self._real_sources_exhausted()

    # ---- Synthesis ----------------------------------------------------------

    def _next_synthetic_batch(self) -> List[Track]:
        cfg, cur = self.config, self.cursor
        missing = cfg.target_size - self.store.size()
        if missing <= 0:
            self._set_phase(CrawlPhase.EXHAUSTED)
            return []

        count = min(cfg.synthetic_batch_size, missing)
        batch = self.synthesizer.generate(cur.next_synthetic_id, count, self._covers)
        cur.next_synthetic_id += count
        added = self._commit(batch, synthetic=True)
        if self.store.size() >= cfg.target_size:
            self._set_phase(CrawlPhase.EXHAUSTED)
        return added

    # ---- Helpers ------------------------------------------------------------

    def _real_sources_exhausted(self) -> None:
        if self.store.size() < self.config.target_size:
            self._set_phase(CrawlPhase.SYNTHESIZING)
        else:
            self._set_phase(CrawlPhase.EXHAUSTED)

    def _set_phase(self, phase: CrawlPhase) -> None:
        if phase is not self._phase:
            logger.info("Crawl phase %s -> %s (%s tracks)", self._phase.value, phase.value, self.store.size())
            self._phase = phase

    @staticmethod
    def _unwrap(result: FetchResult[List[Track]]) -> List[Track]:
        result.raise_for_fatal()
        if result.status is FetchStatus.EMPTY:
            return []
        return list(result.value or [])

    def _commit(self, tracks: Iterable[Track], synthetic: bool = False) -> List[Track]:
        base = self.config.synthetic_id_base
        added: List[Track] = []
        for track in tracks:
            if not synthetic and is_synthetic_id(track.id, base):
                logger.warning("Dropping track %s: id collides with the synthetic range", track.id)
                continue
            if self.store.add([track]):
                added.append(track)
                if not synthetic and track.cover_medium:
                    self._covers.append((track.cover_small, track.cover_medium))
        if added:
            self._sorted = None
        return added
