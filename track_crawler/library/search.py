from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from ..adapters.base import Track


def filter_tracks(tracks: Sequence[Track], query: str) -> Sequence[Track]:
    """Case-insensitive substring match on title, artist or album. Empty query is identity."""
    if not query:
        return tracks
    return [track for track in tracks if track.matches(query)]


class SearchEngine:
    """
    Runs filter passes on a worker thread so a large scan never blocks the
    event loop. The worker only ever sees an immutable tuple snapshot.
    """

    def __init__(self, executor: Optional[ThreadPoolExecutor] = None) -> None:
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="track-search")
        self._owns_executor = executor is None

    async def search(self, tracks: Sequence[Track], query: str) -> Sequence[Track]:
        if not query:
            return tracks
        snapshot = tuple(tracks)
        loop = asyncio.get_running_loop()
        result: List[Track] = await loop.run_in_executor(self._executor, filter_tracks, snapshot, query)
        return result

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)
