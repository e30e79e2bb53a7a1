from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from aiohttp import ClientSession

from .base import FetchResult, FetchStatus, Track, TrackDetails
from ..config import CrawlConfig
from ..errors import DetailNotFound, SourceUnavailable
from ..utils.http import NOT_FOUND, create_session, fetch_json
from ..utils.parsing import details_from_json, tracks_from_page

logger = logging.getLogger(__name__)


class DeezerCatalogSource:
    """
    Catalog source backed by the Deezer public API.

    Search is geo-restricted in some regions; playlist and radio endpoints
    usually still answer there, which is why both shapes are exposed.
    """

    name = "deezer"

    def __init__(
        self,
        base_url: str = "https://api.deezer.com",
        *,
        timeout: float = 15.0,
        user_agent: Optional[str] = None,
        retries: int = 0,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self.retries = retries
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: CrawlConfig) -> "DeezerCatalogSource":
        return cls(
            config.catalog_base_url,
            timeout=config.request_timeout,
            user_agent=config.user_agent,
            retries=config.retries,
        )

    # ---- Paged endpoints ----------------------------------------------------

    async def search(self, term: str, offset: int, limit: int) -> FetchResult[List[Track]]:
        return await self._page("/search/track", {"q": term, "index": offset, "limit": limit})

    async def collection_page(self, collection_id: int, offset: int, limit: int) -> FetchResult[List[Track]]:
        return await self._page(f"/playlist/{collection_id}/tracks", {"index": offset, "limit": limit})

    async def collection_batch(self, collection_id: int) -> FetchResult[List[Track]]:
        return await self._page(f"/radio/{collection_id}/tracks", None)

    # ---- Detail -------------------------------------------------------------

    async def detail(self, track_id: int) -> TrackDetails:
        result = await self._get(f"/track/{track_id}", None)
        result.raise_for_fatal()
        if result.status is FetchStatus.EMPTY:
            if result.reason == NOT_FOUND:
                raise DetailNotFound(track_id)
            raise SourceUnavailable(result.reason or f"detail {track_id} unavailable")

        payload = result.value
        if not isinstance(payload, dict):
            raise SourceUnavailable(f"unexpected detail payload for {track_id}")
        if "error" in payload:
            raise DetailNotFound(track_id)
        return details_from_json(payload)

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "DeezerCatalogSource":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ---- Helpers ------------------------------------------------------------

    def _client(self) -> ClientSession:
        # Created lazily so construction does not need a running loop.
        if self._session is None:
            self._session = create_session(self.user_agent)
            self._owns_session = True
        return self._session

    async def _get(self, path: str, params: Optional[Dict[str, Any]]) -> FetchResult[Any]:
        return await fetch_json(
            self._client(),
            f"{self.base_url}{path}",
            params=params,
            timeout=self.timeout,
            retries=self.retries,
        )

    async def _page(self, path: str, params: Optional[Dict[str, Any]]) -> FetchResult[List[Track]]:
        result = await self._get(path, params)
        if result.status is not FetchStatus.OK:
            logger.debug("%s produced nothing: %s", path, result.reason)
            return result  # type: ignore[return-value]

        payload = result.value
        if isinstance(payload, dict) and "error" in payload:
            return FetchResult.empty(f"api error: {payload['error']!r}")
        tracks = tracks_from_page(payload)
        if not tracks:
            return FetchResult.empty("empty page")
        return FetchResult.ok(tracks)
