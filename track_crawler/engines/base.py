from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
from abc import ABC, abstractmethod

from ..adapters.base import Track


@dataclass
class CrawlReport:
    total_tracks: int = 0
    synthetic_tracks: int = 0
    phase: str = ""
    strategy: str = ""


class TrackEngine(ABC):
    """
    Abstract acquisition engine. Implementations own the crawl lifecycle
    and the corpus; callers only pull pages.
    """

    @abstractmethod
    async def fetch_next_page(self) -> List[Track]:  # pragma: no cover - interface
        """Return the tracks newly added by this call (may be empty while more remains)."""
        ...

    @property
    @abstractmethod
    def has_more(self) -> bool:  # pragma: no cover - interface
        ...

    @property
    @abstractmethod
    def total_tracks(self) -> int:  # pragma: no cover - interface
        ...

    @property
    @abstractmethod
    def all_tracks(self) -> List[Track]:  # pragma: no cover - interface
        """Title-sorted (case-insensitive) snapshot of the corpus."""
        ...

    @abstractmethod
    def get_track(self, track_id: int) -> Optional[Track]:  # pragma: no cover - interface
        ...

    @abstractmethod
    def report(self) -> CrawlReport:  # pragma: no cover - interface
        ...

    async def fetch_bulk(self, pages: int) -> List[Track]:
        added: List[Track] = []
        for _ in range(pages):
            if not self.has_more:
                break
            added.extend(await self.fetch_next_page())
        return added
