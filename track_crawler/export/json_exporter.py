from __future__ import annotations

import json
from typing import Sequence
from pathlib import Path

from ..adapters.base import Track
from ..library.grouping import group_tracks


class JSONExporter:
    """
    Writes the library grouped by first letter, the same shape the API serves.
    """

    def export(self, tracks: Sequence[Track], path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            serializable = {
                "total": len(tracks),
                "groups": {key: [t.to_dict() for t in members] for key, members in group_tracks(tracks).items()},
            }
            json.dump(serializable, f, indent=2, ensure_ascii=False)
