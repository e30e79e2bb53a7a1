from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, TypeVar

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from fakes import small_config

from track_crawler.adapters.base import FetchStatus
from track_crawler.adapters.deezer import DeezerCatalogSource
from track_crawler.adapters.lrclib import LrcLibLyricsSource
from track_crawler.engines.catalog_engine import CatalogCrawlEngine, CrawlPhase
from track_crawler.errors import ConnectivityLost, DetailNotFound, SourceUnavailable
from track_crawler.library.controller import LibraryController
from track_crawler.library.states import LibraryLoaded
from track_crawler.utils.connectivity import ConnectivityMonitor
from track_crawler.utils.http import NOT_FOUND, create_session, fetch_json

T = TypeVar("T")

ITEM = {
    "id": 3135556,
    "title": "Harder, Better, Faster, Stronger",
    "duration": 224,
    "artist": {"name": "Daft Punk"},
    "album": {"title": "Discovery", "cover_small": "s.jpg", "cover_medium": "m.jpg"},
}


def _catalog_app(seen: List[dict]) -> web.Application:
    routes = web.RouteTableDef()

    @routes.get("/search/track")
    async def search(request: web.Request) -> web.Response:
        seen.append(dict(request.query))
        if request.query["q"] == "nothing":
            return web.json_response({"data": [], "total": 0})
        return web.json_response({"data": [ITEM, {"title": "no id"}], "total": 1})

    @routes.get("/playlist/{pid}/tracks")
    async def playlist(request: web.Request) -> web.Response:
        if request.match_info["pid"] == "500":
            return web.Response(status=500, text="boom")
        return web.json_response({"error": {"type": "DataException", "code": 800}})

    @routes.get("/radio/{rid}/tracks")
    async def radio(request: web.Request) -> web.Response:
        return web.json_response({"data": [ITEM]})

    @routes.get("/track/{tid}")
    async def track(request: web.Request) -> web.Response:
        tid = request.match_info["tid"]
        if tid == "404":
            return web.Response(status=404)
        if tid == "500":
            return web.Response(status=500)
        if tid == "800":
            return web.json_response({"error": {"type": "DataException", "code": 800}})
        return web.json_response({**ITEM, "id": int(tid), "contributors": [{"name": "Daft Punk"}]})

    app = web.Application()
    app.add_routes(routes)
    return app


def _lyrics_app(search_result: list, cached_status: int = 404) -> web.Application:
    routes = web.RouteTableDef()

    @routes.get("/search")
    async def search(request: web.Request) -> web.Response:
        return web.json_response(search_result)

    @routes.get("/get-cached")
    async def get_cached(request: web.Request) -> web.Response:
        if cached_status != 200:
            return web.Response(status=cached_status)
        return web.json_response({
            "trackName": request.query["track_name"],
            "artistName": request.query["artist_name"],
            "plainLyrics": f"album={request.query['album_name']} duration={request.query['duration']}",
        })

    app = web.Application()
    app.add_routes(routes)
    return app


async def _serve(app: web.Application, body: Callable[[str], Awaitable[T]]) -> T:
    server = TestServer(app)
    await server.start_server()
    try:
        return await body(str(server.make_url("")).rstrip("/"))
    finally:
        await server.close()


async def _dead_url() -> str:
    server = TestServer(web.Application())
    await server.start_server()
    url = str(server.make_url("")).rstrip("/")
    await server.close()
    return url


def test_search_page_parses_tracks_and_sends_paging_params() -> None:
    seen: List[dict] = []

    async def body(url: str):
        async with DeezerCatalogSource(url) as source:
            return await source.search("daft", 50, 25), await source.search("nothing", 0, 25)

    hit, miss = asyncio.run(_serve(_catalog_app(seen), body))

    assert hit.status is FetchStatus.OK
    assert [t.id for t in hit.value] == [3135556]
    assert hit.value[0].artist_name == "Daft Punk"
    assert seen[0] == {"q": "daft", "index": "50", "limit": "25"}
    assert miss.status is FetchStatus.EMPTY
    assert miss.reason == "empty page"


def test_api_error_payload_and_server_error_are_empty() -> None:
    async def body(url: str):
        async with DeezerCatalogSource(url) as source:
            return await source.collection_page(1, 0, 10), await source.collection_page(500, 0, 10)

    api_error, server_error = asyncio.run(_serve(_catalog_app([]), body))

    assert api_error.status is FetchStatus.EMPTY
    assert api_error.reason.startswith("api error")
    assert server_error.status is FetchStatus.EMPTY


def test_radio_batch() -> None:
    async def body(url: str):
        async with DeezerCatalogSource(url) as source:
            return await source.collection_batch(37151)

    result = asyncio.run(_serve(_catalog_app([]), body))
    assert result.status is FetchStatus.OK
    assert result.value[0].album_title == "Discovery"


def test_detail_lookup_outcomes() -> None:
    async def body(url: str):
        async with DeezerCatalogSource(url) as source:
            details = await source.detail(42)
            with pytest.raises(DetailNotFound):
                await source.detail(404)
            with pytest.raises(DetailNotFound):
                await source.detail(800)
            with pytest.raises(SourceUnavailable):
                await source.detail(500)
            return details

    details = asyncio.run(_serve(_catalog_app([]), body))
    assert details.id == 42
    assert details.contributors == ("Daft Punk",)


def test_unreachable_catalog_is_fatal() -> None:
    async def run():
        url = await _dead_url()
        async with DeezerCatalogSource(url, timeout=2.0) as source:
            page = await source.search("daft", 0, 10)
            with pytest.raises(ConnectivityLost):
                await source.detail(1)
            return page

    page = asyncio.run(run())
    assert page.status is FetchStatus.FATAL
    assert isinstance(page.error, ConnectivityLost)


def test_fetch_json_retries_bad_statuses_and_never_retries_404() -> None:
    hits = {"flaky": 0, "missing": 0}
    routes = web.RouteTableDef()

    @routes.get("/flaky")
    async def flaky(request: web.Request) -> web.Response:
        hits["flaky"] += 1
        return web.Response(status=503)

    @routes.get("/missing")
    async def missing(request: web.Request) -> web.Response:
        hits["missing"] += 1
        return web.Response(status=404)

    @routes.get("/garbage")
    async def garbage(request: web.Request) -> web.Response:
        return web.Response(text="<html>not json</html>")

    app = web.Application()
    app.add_routes(routes)

    async def body(url: str):
        session = create_session()
        try:
            return (
                await fetch_json(session, f"{url}/flaky", retries=1),
                await fetch_json(session, f"{url}/missing", retries=3),
                await fetch_json(session, f"{url}/garbage"),
            )
        finally:
            await session.close()

    flaky_result, missing_result, garbage_result = asyncio.run(_serve(app, body))

    assert flaky_result.status is FetchStatus.EMPTY
    assert hits["flaky"] == 2
    assert missing_result.reason == NOT_FOUND
    assert hits["missing"] == 1
    assert garbage_result.status is FetchStatus.EMPTY


def test_lyrics_search_match_wins() -> None:
    candidates = [{"trackName": "Song", "artistName": "Band", "plainLyrics": "la la"}]

    async def body(url: str):
        source = LrcLibLyricsSource(url)
        try:
            return await source.lookup("Song", "Band", "Album", 200)
        finally:
            await source.close()

    lyrics = asyncio.run(_serve(_lyrics_app(candidates), body))
    assert lyrics is not None
    assert lyrics.plain == "la la"


def test_lyrics_fall_back_to_exact_lookup() -> None:
    async def body(url: str):
        source = LrcLibLyricsSource(url)
        try:
            return await source.lookup("Song", "Band", "Album", 200)
        finally:
            await source.close()

    lyrics = asyncio.run(_serve(_lyrics_app([], cached_status=200), body))
    assert lyrics is not None
    assert lyrics.plain == "album=Album duration=200"


def test_no_lyrics_anywhere_is_none() -> None:
    async def body(url: str):
        source = LrcLibLyricsSource(url)
        try:
            return await source.lookup("Song", "Band", "Album", 200)
        finally:
            await source.close()

    assert asyncio.run(_serve(_lyrics_app([]), body)) is None


def test_unreachable_lyrics_service_raises() -> None:
    async def run():
        source = LrcLibLyricsSource(await _dead_url(), timeout=2.0)
        try:
            with pytest.raises(ConnectivityLost):
                await source.lookup("Song", "Band", "Album", 200)
        finally:
            await source.close()

    asyncio.run(run())


def test_connectivity_monitor_checks_and_notifies_on_change() -> None:
    routes = web.RouteTableDef()

    @routes.head("/")
    async def head(request: web.Request) -> web.Response:
        return web.Response(status=200)

    app = web.Application()
    app.add_routes(routes)
    changes: List[bool] = []

    async def body(url: str):
        monitor = ConnectivityMonitor(f"{url}/", timeout=2.0)
        monitor.subscribe(changes.append)
        try:
            first = await monitor.check()
            second = await monitor.check()
        finally:
            await monitor.close()
        return first, second

    assert asyncio.run(_serve(app, body)) == (True, True)
    assert changes == [True]


def test_connectivity_monitor_reports_offline() -> None:
    async def run():
        monitor = ConnectivityMonitor(f"{await _dead_url()}/", timeout=2.0)
        try:
            return await monitor.check(), monitor.is_online
        finally:
            await monitor.close()

    assert asyncio.run(run()) == (False, False)


BAD_UTF8 = b'{"data":[{"id":1,"title":"\xff\xfe"}]}'


def _garbled_catalog_app() -> web.Application:
    routes = web.RouteTableDef()

    @routes.get("/search/track")
    async def search(request: web.Request) -> web.Response:
        if request.query["q"] == "a" and request.query["index"] == "0":
            items = [{**ITEM, "id": i, "title": f"Song {i}"} for i in range(1, 6)]
            return web.json_response({"data": items})
        return web.Response(body=BAD_UTF8, content_type="application/json")

    app = web.Application()
    app.add_routes(routes)
    return app


def test_body_that_is_not_utf8_is_an_empty_page() -> None:
    async def body(url: str):
        async with DeezerCatalogSource(url) as source:
            return await source.search("b", 0, 5)

    result = asyncio.run(_serve(_garbled_catalog_app(), body))
    assert result.status is FetchStatus.EMPTY


def test_garbled_pages_are_skipped_by_the_crawl() -> None:
    async def body(url: str):
        cfg = small_config(catalog_base_url=url, background_rounds=0, initial_pages=3)
        source = DeezerCatalogSource.from_config(cfg)
        engine = CatalogCrawlEngine(cfg, source)
        controller = LibraryController(engine, cfg)
        try:
            await controller.load()
            return controller.state, engine
        finally:
            await controller.close()
            await source.close()

    state, engine = asyncio.run(_serve(_garbled_catalog_app(), body))

    assert isinstance(state, LibraryLoaded)
    assert state.total_loaded == 5
    assert engine.cursor.term_index == 2
    assert engine.phase is CrawlPhase.SYNTHESIZING


def test_lyrics_body_that_is_not_utf8_means_no_lyrics() -> None:
    routes = web.RouteTableDef()

    @routes.get("/search")
    async def search(request: web.Request) -> web.Response:
        return web.Response(body=b'[{"plainLyrics":"\xff\xfe"}]', content_type="application/json")

    @routes.get("/get-cached")
    async def get_cached(request: web.Request) -> web.Response:
        return web.Response(body=b'{"plainLyrics":"\xff"}', content_type="application/json")

    app = web.Application()
    app.add_routes(routes)

    async def body(url: str):
        source = LrcLibLyricsSource(url)
        try:
            return await source.lookup("Song", "Band", "Album", 200)
        finally:
            await source.close()

    assert asyncio.run(_serve(app, body)) is None
