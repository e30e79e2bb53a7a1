from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any
import os
import json

from .version import __version__, CONFIG_SCHEMA_VERSION


DEFAULT_SEARCH_TERMS: List[str] = [
    *"abcdefghijklmnopqrstuvwxyz",
    *"0123456789",
    "love", "night", "baby", "heart", "dream", "fire",
    "sun", "rain", "dance", "rock", "blue", "star",
]

# Large public playlists grouped roughly by genre (pop, rock, hip-hop,
# electronic, r&b, latin, chill, country, jazz, metal, indie, classical).
DEFAULT_PLAYLIST_IDS: List[int] = [
    3155776842, 1313621735, 1111141961, 53362031, 1282495565,
    1130102843, 1214944503, 1128080763, 2098157264, 4523444422,
    1996494362, 1677006641, 2528039982, 5765328804, 3338949242,
    1306931615, 64459261, 1450284242, 1652248171, 1110287021,
    12648996782, 6597846484, 4782920764, 4503899902, 3564499742,
    11691957522, 10952747602, 8931919502,
]

DEFAULT_RADIO_IDS: List[int] = [
    *range(37151, 37171),
    *range(36891, 36911),
    *range(30621, 30641),
    *range(6, 16),
]


@dataclass
class CrawlConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) so every layer can import it.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION

    # Corpus
    target_size: int = 20_000
    synthetic_batch_size: int = 500
    synthetic_id_base: int = 900_000_000_000

    # Keyword search strategy
    probe_term: str = "love"
    probe_limit: int = 10
    search_terms: List[str] = field(default_factory=lambda: list(DEFAULT_SEARCH_TERMS))
    search_page_size: int = 50
    max_pages_per_term: int = 40

    # Collection crawl strategy
    playlist_ids: List[int] = field(default_factory=lambda: list(DEFAULT_PLAYLIST_IDS))
    radio_ids: List[int] = field(default_factory=lambda: list(DEFAULT_RADIO_IDS))
    collection_page_size: int = 100

    # Library orchestration
    initial_pages: int = 10
    background_rounds: int = 20
    background_pages: int = 5
    load_more_pages: int = 5
    search_debounce: float = 0.3

    # Transport
    catalog_base_url: str = "https://api.deezer.com"
    lyrics_base_url: str = "https://lrclib.net/api"
    connectivity_url: str = "https://api.deezer.com/"
    request_timeout: float = 15.0
    lyrics_timeout: float = 10.0
    retries: int = 0
    user_agent: str = f"track_crawler/{__version__}"

    # Dotted paths so implementations can be swapped without code changes.
    source: str = "track_crawler.adapters.deezer:DeezerCatalogSource"
    engine: str = "track_crawler.engines.catalog_engine:CatalogCrawlEngine"
    exporter: str = "track_crawler.export.json_exporter:JSONExporter"
    output_path: str = "output/tracks.json"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        """
        Build config from environment variables (all optional).
        """
        defaults = cls()

        def _get(name: str, default: Any) -> str:
            return os.getenv(f"TRACK_CRAWLER_{name}", str(default))

        def _list(name: str) -> List[str]:
            raw = os.getenv(f"TRACK_CRAWLER_{name}", "")
            return [v.strip() for v in raw.split(",") if v.strip()]

        terms = _list("SEARCH_TERMS") or defaults.search_terms
        playlists = [int(v) for v in _list("PLAYLIST_IDS")] or defaults.playlist_ids
        radios = [int(v) for v in _list("RADIO_IDS")] or defaults.radio_ids

        return cls(
            target_size=int(_get("TARGET_SIZE", defaults.target_size)),
            synthetic_batch_size=int(_get("SYNTHETIC_BATCH_SIZE", defaults.synthetic_batch_size)),
            synthetic_id_base=int(_get("SYNTHETIC_ID_BASE", defaults.synthetic_id_base)),
            probe_term=_get("PROBE_TERM", defaults.probe_term),
            probe_limit=int(_get("PROBE_LIMIT", defaults.probe_limit)),
            search_terms=terms,
            search_page_size=int(_get("SEARCH_PAGE_SIZE", defaults.search_page_size)),
            max_pages_per_term=int(_get("MAX_PAGES_PER_TERM", defaults.max_pages_per_term)),
            playlist_ids=playlists,
            radio_ids=radios,
            collection_page_size=int(_get("COLLECTION_PAGE_SIZE", defaults.collection_page_size)),
            initial_pages=int(_get("INITIAL_PAGES", defaults.initial_pages)),
            background_rounds=int(_get("BACKGROUND_ROUNDS", defaults.background_rounds)),
            background_pages=int(_get("BACKGROUND_PAGES", defaults.background_pages)),
            load_more_pages=int(_get("LOAD_MORE_PAGES", defaults.load_more_pages)),
            search_debounce=float(_get("SEARCH_DEBOUNCE", defaults.search_debounce)),
            catalog_base_url=_get("CATALOG_BASE_URL", defaults.catalog_base_url),
            lyrics_base_url=_get("LYRICS_BASE_URL", defaults.lyrics_base_url),
            connectivity_url=_get("CONNECTIVITY_URL", defaults.connectivity_url),
            request_timeout=float(_get("REQUEST_TIMEOUT", defaults.request_timeout)),
            lyrics_timeout=float(_get("LYRICS_TIMEOUT", defaults.lyrics_timeout)),
            retries=int(_get("RETRIES", defaults.retries)),
            user_agent=_get("USER_AGENT", defaults.user_agent),
            source=_get("SOURCE", defaults.source),
            engine=_get("ENGINE", defaults.engine),
            exporter=_get("EXPORTER", defaults.exporter),
            output_path=_get("OUTPUT_PATH", defaults.output_path),
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "CrawlConfig":
        """
        Load configuration from a JSON file, migrating older schemas first.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        data = migrate_config(data)
        return cls(**data)

    # ---------- Validation ----------

    def validate(self) -> None:
        positive = {
            "target_size": self.target_size,
            "synthetic_batch_size": self.synthetic_batch_size,
            "synthetic_id_base": self.synthetic_id_base,
            "probe_limit": self.probe_limit,
            "search_page_size": self.search_page_size,
            "max_pages_per_term": self.max_pages_per_term,
            "collection_page_size": self.collection_page_size,
            "initial_pages": self.initial_pages,
            "background_pages": self.background_pages,
            "load_more_pages": self.load_more_pages,
            "request_timeout": self.request_timeout,
            "lyrics_timeout": self.lyrics_timeout,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.background_rounds < 0:
            raise ValueError("background_rounds must be >= 0")
        if self.search_debounce < 0:
            raise ValueError("search_debounce must be >= 0")
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if not self.search_terms:
            raise ValueError("search_terms cannot be empty")


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate a config dict to the latest schema version.
    Keep this pure and additive; add a step here whenever the schema is bumped.
    """
    data = dict(raw)
    # No older schema exists yet; stamp the current version when missing.
    data.setdefault("schema_version", CONFIG_SCHEMA_VERSION)
    return data
