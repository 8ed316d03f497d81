"""Command-line interface entry point for the map listing scraper."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

from dotenv import load_dotenv
from playwright.async_api import async_playwright

from mapscraper.browser import BrowserSupervisor
from mapscraper.errors import ConfigError
from mapscraper.extractors.schemas import build_queries
from mapscraper.logging_config import configure_logging, get_logger
from mapscraper.pipeline import ScrapePipeline, save_results
from mapscraper.playwright_env import apply_stealth, headless_enabled
from mapscraper.settings import ScraperSettings, load_settings
from mapscraper.storage.batches import BatchStore

LOGGER = get_logger(__name__)


def _split_list(value: str | None) -> list[str]:
    return [entry.strip() for entry in (value or "").split(",") if entry.strip()]


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the scraper."""

    parser = argparse.ArgumentParser(
        description="Collect business listings (name, phones, address) from map search results."
    )
    parser.add_argument(
        "--keywords",
        type=str,
        help="Comma-separated search keywords (default: configured keywords).",
    )
    parser.add_argument(
        "--regions",
        type=str,
        help="Comma-separated regions appended to each keyword (default: configured regions).",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to a YAML configuration file merged over the built-in defaults.",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        help="Number of search queries processed concurrently.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of detail pages processed per batch.",
    )
    parser.add_argument(
        "--pan-steps",
        dest="pan_steps",
        type=int,
        help="Number of map panning steps per query (0 disables panning).",
    )
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window instead of running headless.",
    )
    parser.add_argument(
        "--merge-only",
        dest="merge_only",
        action="store_true",
        help="Skip scraping and only merge existing temp batches into the output files.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str,
        help="Logging level for console and file output (default: LOG_LEVEL or INFO).",
    )

    args = parser.parse_args(list(argv) if argv is not None else None)

    for name in ("concurrency", "workers"):
        value = getattr(args, name)
        if value is not None and value <= 0:
            parser.error(f"--{name} must be a positive integer")
    if args.pan_steps is not None and args.pan_steps < 0:
        parser.error("--pan-steps must not be negative")

    args.keywords = _split_list(args.keywords)
    args.regions = _split_list(args.regions)
    return args


def resolve_settings(args: argparse.Namespace) -> ScraperSettings:
    """Load configuration and apply command-line and environment overrides."""

    settings = load_settings(Path(args.config) if args.config else None)

    overrides: dict[str, Any] = {}
    if args.keywords:
        overrides["keywords"] = tuple(args.keywords)
    if args.regions:
        overrides["regions"] = tuple(args.regions)
    if args.concurrency is not None:
        overrides["searchers"] = args.concurrency
    if args.workers is not None:
        overrides["workers"] = args.workers
    if args.pan_steps is not None:
        overrides["pan_steps"] = args.pan_steps
    overrides["headless"] = False if args.headful else headless_enabled(settings.headless)

    return replace(settings, **overrides)


async def _async_main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    load_dotenv()
    configure_logging(args.log_level)
    settings = resolve_settings(args)
    LOGGER.info(
        "Parsed arguments: keywords=%s regions=%s searchers=%s workers=%s pan_steps=%s headless=%s merge_only=%s",
        list(settings.keywords),
        len(settings.regions),
        settings.searchers,
        settings.workers,
        settings.pan_steps,
        settings.headless,
        args.merge_only,
    )

    store = BatchStore(settings.temp_dir)
    if args.merge_only:
        save_results(store, settings.output_dir)
        return

    queries = build_queries(settings.keywords, settings.regions)
    if not queries:
        raise ConfigError("No queries to run: at least one keyword and one region are required.")

    async with async_playwright() as playwright:
        apply_stealth(playwright)
        supervisor = BrowserSupervisor.for_playwright(
            playwright,
            headless=settings.headless,
            relaunch_delay=settings.browser_relaunch_delay,
        )
        try:
            pipeline = ScrapePipeline.for_browser(settings, supervisor, store)
            await pipeline.run(queries)
        finally:
            await supervisor.close()

    save_results(store, settings.output_dir)


def main(argv: Iterable[str] | None = None) -> None:
    try:
        asyncio.run(_async_main(argv))
    except ConfigError as exc:
        LOGGER.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except KeyboardInterrupt:  # pragma: no cover - interactive safety
        LOGGER.info("Interrupted by user; temp batches are kept for --merge-only")
    except Exception as exc:
        LOGGER.exception("Scraper run failed")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
