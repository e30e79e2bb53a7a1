from __future__ import annotations

from typing import Dict, Iterable, List

from ..adapters.base import SENTINEL_GROUP, Track


def _key_order(key: str) -> tuple[int, str]:
    return (1, key) if key == SENTINEL_GROUP else (0, key)


def group_tracks(tracks: Iterable[Track]) -> Dict[str, List[Track]]:
    """
    Partition tracks into alphabetic buckets keyed A..Z, then "#".

    Members keep their input order, so sort the input first when display
    order matters.
    """
    grouped: Dict[str, List[Track]] = {}
    for track in tracks:
        grouped.setdefault(track.group_key, []).append(track)
    return {key: grouped[key] for key in sorted(grouped, key=_key_order)}
