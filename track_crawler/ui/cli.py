from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import List

from ..config import CrawlConfig
from ..utils.logging import setup_logging
from ..utils.loader import load_symbol
from ..adapters.lrclib import LrcLibLyricsSource
from ..export.base import Exporter
from ..library.controller import LibraryController
from ..library.details import TrackDetailsController
from ..library.states import LibraryError, LibraryLoaded

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Music catalog crawler CLI")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--target-size", type=int, default=None, help="Corpus size to reach (synthetic filler tops it up)")
    p.add_argument("--initial-pages", type=int, default=None, help="Pages fetched before the first view")
    p.add_argument("--background-rounds", type=int, default=None, help="Background rounds after the first view")
    p.add_argument("--search", type=str, default=None, help="Only export tracks matching this query")
    p.add_argument("--details", type=int, default=None, metavar="TRACK_ID",
                   help="Print details and lyrics for one track as JSON, then exit")
    p.add_argument("--source", type=str, default=None, help="Catalog source dotted path (module:ClassName)")
    p.add_argument("--engine", type=str, default=None, help="Engine dotted path (module:ClassName)")
    p.add_argument("--exporter", type=str, default=None, help="Exporter dotted path (module:ClassName)")
    p.add_argument("--output", type=str, default=None, help="Output file path")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run the REST API server instead of a one-off crawl")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=8000, help="API port (when --serve)")
    return p


def _load_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config:
        cfg = CrawlConfig.from_file(args.config)
    else:
        cfg = CrawlConfig.from_env()

    if args.target_size is not None:
        cfg.target_size = args.target_size
    if args.initial_pages is not None:
        cfg.initial_pages = args.initial_pages
    if args.background_rounds is not None:
        cfg.background_rounds = args.background_rounds
    if args.source:
        cfg.source = args.source
    if args.engine:
        cfg.engine = args.engine
    if args.exporter:
        cfg.exporter = args.exporter
    if args.output:
        cfg.output_path = args.output

    cfg.validate()
    return cfg


def run_server(host: str, port: int) -> None:
    try:
        import uvicorn  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dep
        raise SystemExit("To run the API, install extras: pip install 'track-crawler[api]'") from exc
    uvicorn.run("track_crawler.apis.app:app", host=host, port=port)


async def _crawl(cfg: CrawlConfig, query: str | None) -> int:
    # Dynamic source + engine loading so implementations can be swapped from config.
    source = load_symbol(cfg.source).from_config(cfg)
    engine = load_symbol(cfg.engine)(cfg, source=source)
    controller = LibraryController(engine, cfg)
    try:
        await controller.load()
        await controller.join()
        if query:
            await controller.search(query)
            await controller.wait_for_search()
        state = controller.state
    finally:
        await controller.close()
        await source.close()

    if isinstance(state, LibraryError):
        logger.error("Crawl failed: %s%s", state.message, " (offline)" if state.is_offline else "")
        return 2
    if not isinstance(state, LibraryLoaded):
        logger.error("Crawl ended in unexpected state %s", state.name)
        return 1

    exporter: Exporter = load_symbol(cfg.exporter)()
    exporter.export(state.display_tracks, cfg.output_path)

    report = engine.report()
    logger.info("Tracks: %s (synthetic %s) | Strategy: %s | Exported: %s | Groups: %s | Output: %s",
                report.total_tracks,
                report.synthetic_tracks,
                report.strategy or "none",
                len(state.display_tracks),
                len(state.grouped_tracks),
                cfg.output_path)
    return 0


async def _show_details(cfg: CrawlConfig, track_id: int) -> int:
    source = load_symbol(cfg.source).from_config(cfg)
    lyrics = LrcLibLyricsSource.from_config(cfg)
    controller = TrackDetailsController(source, lyrics, cfg)
    try:
        state = await controller.fetch_by_id(track_id)
    finally:
        await source.close()
        await lyrics.close()
    print(json.dumps(state.to_dict(), indent=2, ensure_ascii=False))
    return 0 if state.name == "loaded" else 2


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.serve:
        run_server(args.host, args.port)
        return 0

    cfg = _load_config(args)

    if args.details is not None:
        return asyncio.run(_show_details(cfg, args.details))
    return asyncio.run(_crawl(cfg, args.search))
