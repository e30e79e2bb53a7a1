from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..adapters.base import Track


class TrackStore:
    """
    Identity-keyed set of unique tracks; the first record seen for an id wins.

    Only ``add`` mutates, and it never awaits, so readers on the same event
    loop always see a complete prefix of the additions.
    """

    def __init__(self) -> None:
        self._tracks: Dict[int, Track] = {}

    def add(self, tracks: Iterable[Track]) -> int:
        added = 0
        for track in tracks:
            if track.id not in self._tracks:
                self._tracks[track.id] = track
                added += 1
        return added

    def all(self) -> List[Track]:
        return list(self._tracks.values())

    def size(self) -> int:
        return len(self._tracks)

    def get(self, track_id: int) -> Optional[Track]:
        return self._tracks.get(track_id)

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._tracks
