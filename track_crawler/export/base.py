from __future__ import annotations

from typing import Protocol, Sequence

from ..adapters.base import Track


class Exporter(Protocol):
    def export(self, tracks: Sequence[Track], path: str) -> None:
        ...
