from __future__ import annotations

import csv
from typing import Sequence
from pathlib import Path

from ..adapters.base import Track


class CSVExporter:
    """
    Writes one row per track, in the order given.
    """

    _headers = [
        "group",
        "id",
        "title",
        "artist",
        "album",
        "duration",
        "cover_small",
        "cover_medium",
    ]

    def export(self, tracks: Sequence[Track], path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            w = csv.writer(f)
            w.writerow(self._headers)
            for track in tracks:
                w.writerow(
                    [
                        track.group_key,
                        track.id,
                        track.title,
                        track.artist_name,
                        track.album_title,
                        track.duration,
                        track.cover_small,
                        track.cover_medium,
                    ]
                )
