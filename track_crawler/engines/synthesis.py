from __future__ import annotations

import random
from typing import List, Sequence, Tuple

from ..adapters.base import Track

Cover = Tuple[str, str]  # (small, medium)

TITLE_PREFIXES = [
    "Midnight", "Golden", "Electric", "Broken", "Silver", "Endless", "Wild",
    "Neon", "Lonely", "Crimson", "Velvet", "Summer", "Winter", "Hidden",
    "Burning", "Falling", "Secret", "Distant", "Faded", "Restless",
    "Quiet", "Paper", "Crystal", "Highway", "Ocean", "Cosmic", "Sweet",
    "Early", "Last", "Northern",
]

CONNECTIVES = ["of", "in", "and", "on", "for", "under", "without"]

TITLE_SUFFIXES = [
    "Dreams", "Heart", "Lights", "Roads", "Skies", "Waves", "Fire", "Rain",
    "Echoes", "Shadows", "Stars", "Memories", "Horizon", "Signals", "Lovers",
    "Streets", "Rivers", "Tides", "Days", "Nights", "Mirrors", "Storm",
    "Gardens", "Voices", "Wings", "Embers", "Letters", "Rhythm", "Silence",
    "Morning",
]

ARTIST_NAMES = [
    "The Velvet Hours", "Luna Park", "Nova Reyes", "Atlas Bloom", "Kid Meridian",
    "Harbor Lights", "Mira Sol", "The Paper Kites Club", "Echo Valley",
    "Sam Okafor", "Juniper Lane", "Static Pines", "Ivy & The Wolves",
    "Marco Bellini", "Yuki Tanaka", "The Northern Drift", "Ada Stone",
    "Glass Animals Revival", "Ruby Coast", "Leon Hart",
]

ALBUM_NAMES = [
    "Late Night Radio", "Open Water", "Second Nature", "City of Glass",
    "Slow Motion", "Blue Hour", "Northern Lights", "Paper Moons",
    "Analog Hearts", "Long Way Home", "Afterglow", "Satellite Songs",
    "Small Hours", "Golden Age", "Coastlines",
]

MIN_DURATION = 120
MAX_DURATION = 360


def is_synthetic_id(track_id: int, id_base: int) -> bool:
    return track_id >= id_base


class TrackSynthesizer:
    """
    Deterministic filler-track generator.

    A batch is seeded with its first id, so the same id counter always
    reproduces the same batch.
    """

    def __init__(self, connective_chance: float = 0.4) -> None:
        self.connective_chance = connective_chance

    def generate(self, start_id: int, count: int, covers: Sequence[Cover] = ()) -> List[Track]:
        rng = random.Random(start_id)
        return [self._one(rng, start_id + offset, covers) for offset in range(count)]

    def _one(self, rng: random.Random, track_id: int, covers: Sequence[Cover]) -> Track:
        words = [rng.choice(TITLE_PREFIXES)]
        if rng.random() < self.connective_chance:
            words.append(rng.choice(CONNECTIVES))
        words.append(rng.choice(TITLE_SUFFIXES))
        small, medium = rng.choice(covers) if covers else ("", "")
        return Track(
            id=track_id,
            title=" ".join(words),
            artist_name=rng.choice(ARTIST_NAMES),
            album_title=rng.choice(ALBUM_NAMES),
            cover_small=small,
            cover_medium=medium,
            duration=rng.randint(MIN_DURATION, MAX_DURATION),
        )
