from __future__ import annotations

import time

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient
from fakes import FakeCatalogSource, FakeLyricsSource, make_tracks, small_config

from track_crawler.adapters.base import Lyrics, TrackDetails
from track_crawler.apis.app import create_app
from track_crawler.utils.connectivity import ConnectivityMonitor


class StaticMonitor(ConnectivityMonitor):
    async def check(self) -> bool:
        return bool(self.is_online)


def _client(source=None, monitor=None, **overrides) -> TestClient:
    source = source or FakeCatalogSource(
        search={"a": make_tracks(1, 12), "b": make_tracks(100, 20)},
        details={1: TrackDetails(id=1, title="Song 1", artist_name="Artist", album_title="Album", duration=61)},
    )
    app = create_app(
        config=small_config(**overrides),
        source=source,
        lyrics=FakeLyricsSource(Lyrics("Song 1", "Artist", plain="words")),
        connectivity=monitor or StaticMonitor(),
    )
    return TestClient(app)


def test_health() -> None:
    with _client() as client:
        assert client.get("/health").json() == {"status": "ok"}


def test_library_starts_initial() -> None:
    with _client() as client:
        assert client.get("/library").json() == {"state": "initial"}


def test_load_then_read_grouped_library() -> None:
    with _client(background_rounds=0) as client:
        loaded = client.post("/library/load").json()
        assert loaded["state"] == "loaded"
        assert loaded["total_loaded"] == 10
        assert "grouped_tracks" not in loaded

        full = client.get("/library", params={"include_tracks": True}).json()
        assert full["groups"] == {"S": 10}
        assert len(full["grouped_tracks"]["S"]) == 10


def test_search_is_debounced_then_cleared() -> None:
    with _client(background_rounds=0) as client:
        client.post("/library/load")
        resp = client.post("/library/search", json={"query": "song 1"})
        assert resp.status_code == 202
        assert resp.json() == {"scheduled": "song 1", "debounce": 0.02}

        time.sleep(0.3)
        state = client.get("/library").json()
        assert state["search_query"] == "song 1"
        assert state["display_count"] == 2

        cleared = client.delete("/library/search").json()
        assert cleared["search_query"] == ""
        assert cleared["display_count"] == 10


def test_load_more_grows_the_library() -> None:
    with _client(background_rounds=0) as client:
        client.post("/library/load")
        more = client.post("/library/load-more").json()
        assert more["total_loaded"] == 17
        assert more["is_loading_more"] is False


def test_offline_load_then_retry() -> None:
    source = FakeCatalogSource(search={"a": make_tracks(1, 12)})
    source.offline = True
    with _client(source=source, background_rounds=0) as client:
        error = client.post("/library/load").json()
        assert error == {"state": "error", "message": "NO INTERNET CONNECTION", "is_offline": True}

        source.offline = False
        assert client.post("/library/retry").json()["state"] == "loaded"


def test_track_details() -> None:
    with _client(background_rounds=0) as client:
        client.post("/library/load")
        details = client.get("/tracks/1").json()
        assert details["state"] == "loaded"
        assert details["details"]["formatted_duration"] == "1:01"
        assert details["lyrics"]["display"] == "words"

        missing = client.get("/tracks/2").json()
        assert missing["state"] == "error"
        assert client.get("/tracks/999").status_code == 404


def test_connectivity_endpoint() -> None:
    monitor = StaticMonitor()
    monitor.set_online(False)
    with _client(monitor=monitor) as client:
        assert client.get("/connectivity").json() == {"online": False}
        assert client.post("/library/load").json()["is_offline"] is True
