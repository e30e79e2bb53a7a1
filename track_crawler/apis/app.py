from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional
import logging

try:
    from fastapi import FastAPI, HTTPException
    from pydantic import BaseModel
except ImportError as exc:  # pragma: no cover - optional dependency
    raise RuntimeError(
        "FastAPI not installed. Install with `pip install 'track-crawler[api]'` "
        "or avoid using the API server."
    ) from exc

from ..version import __version__
from ..config import CrawlConfig
from ..utils.loader import load_symbol
from ..utils.connectivity import ConnectivityMonitor
from ..adapters.base import CatalogSource, LyricsSource
from ..adapters.lrclib import LrcLibLyricsSource
from ..library.controller import LibraryController
from ..library.details import TrackDetailsController
from ..library.states import LibraryLoaded, LibraryState

logger = logging.getLogger(__name__)


class SearchRequest(BaseModel):
    query: str


class LibraryService:
    """
    Process-wide objects behind the API. Built on first use so that every
    asyncio primitive and HTTP session lives on the server's event loop.
    """

    def __init__(
        self,
        config: CrawlConfig,
        source: Optional[CatalogSource] = None,
        lyrics: Optional[LyricsSource] = None,
        connectivity: Optional[ConnectivityMonitor] = None,
    ) -> None:
        self.config = config
        self.source = source or load_symbol(config.source).from_config(config)
        self.lyrics = lyrics or LrcLibLyricsSource.from_config(config)
        self.connectivity = connectivity or ConnectivityMonitor(config.connectivity_url)
        engine = load_symbol(config.engine)(config, source=self.source)
        self.library = LibraryController(engine, config, connectivity=self.connectivity)

    async def close(self) -> None:
        await self.library.close()
        await self.source.close()
        await self.lyrics.close()
        await self.connectivity.close()


def _state_dict(state: LibraryState, include_tracks: bool = False) -> Dict[str, Any]:
    if isinstance(state, LibraryLoaded):
        return state.to_dict(include_tracks=include_tracks)
    return state.to_dict()


def create_app(
    config: Optional[CrawlConfig] = None,
    source: Optional[CatalogSource] = None,
    lyrics: Optional[LyricsSource] = None,
    connectivity: Optional[ConnectivityMonitor] = None,
) -> FastAPI:
    cfg = config or CrawlConfig.from_env()
    cfg.validate()
    holder: Dict[str, LibraryService] = {}

    def service() -> LibraryService:
        if "service" not in holder:
            holder["service"] = LibraryService(cfg, source=source, lyrics=lyrics, connectivity=connectivity)
        return holder["service"]

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        svc = holder.pop("service", None)
        if svc is not None:
            await svc.close()

    app = FastAPI(title="track_crawler API", version=__version__, lifespan=lifespan)

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/library")
    async def library(include_tracks: bool = False) -> Dict[str, Any]:
        return _state_dict(service().library.state, include_tracks)

    @app.post("/library/load")
    async def load() -> Dict[str, Any]:
        lib = service().library
        await lib.load()
        return _state_dict(lib.state)

    @app.post("/library/load-more")
    async def load_more() -> Dict[str, Any]:
        lib = service().library
        await lib.load_more()
        return _state_dict(lib.state)

    @app.post("/library/search", status_code=202)
    async def search(req: SearchRequest) -> Dict[str, Any]:
        lib = service().library
        await lib.search(req.query)
        return {"scheduled": req.query, "debounce": cfg.search_debounce}

    @app.delete("/library/search")
    async def clear_search() -> Dict[str, Any]:
        lib = service().library
        await lib.clear_search()
        return _state_dict(lib.state)

    @app.post("/library/retry")
    async def retry() -> Dict[str, Any]:
        lib = service().library
        await lib.retry()
        return _state_dict(lib.state)

    @app.get("/tracks/{track_id}")
    async def track_details(track_id: int) -> Dict[str, Any]:
        svc = service()
        track = svc.library.engine.get_track(track_id)
        if track is None:
            raise HTTPException(status_code=404, detail=f"Track {track_id} is not in the library")
        controller = TrackDetailsController(svc.source, svc.lyrics, cfg)
        state = await controller.fetch(track)
        return state.to_dict()

    @app.get("/connectivity")
    async def connectivity_status() -> Dict[str, Any]:
        monitor = service().connectivity
        online = await monitor.check()
        return {"online": online}

    return app


app = create_app()
