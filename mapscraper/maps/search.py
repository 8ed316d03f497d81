"""Search-page flow: navigate, locate the result feed, scroll, pan, collect."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence
from urllib.parse import parse_qs, quote, urlsplit

import mapscraper.selectors as selectors
from mapscraper.driver import PageDriver
from mapscraper.extractors.schemas import LinkRecord, Query
from mapscraper.logging_config import get_logger
from mapscraper.maps.feed import FeedScroller
from mapscraper.maps.links import LinkCollector, unique_links
from mapscraper.maps.panning import ViewportPanner
from mapscraper.retry import RetryPolicy

LOGGER = get_logger(__name__)

BASE_URL = "https://www.google.com/maps"
SELECTOR_POLL_MS = 200
CONSENT_CLICK_SETTLE_MS = 2000
PAGE_SETTLE_MS = 3000
MAIN_PANE_TIMEOUT_MS = 10000
FALLBACK_SETTLE_MS = 2000
LAST_CHANCE_DELAY_MS = 3000


def build_search_url(query: str) -> str:
    return f"{BASE_URL}/search/{quote(query, safe='')}"


def build_fallback_url(query: str) -> str:
    return f"{BASE_URL}?q={quote(query, safe='')}"


async def wait_for_any_selector(
    driver: PageDriver,
    candidates: Sequence[str],
    timeout_ms: int,
    *,
    clock=time.monotonic,
) -> str | None:
    """Return the first candidate that is visible and has scrollable content.

    Candidates are polled in order until *timeout_ms* elapses.
    """

    deadline = clock() + timeout_ms / 1000
    while True:
        for selector in candidates:
            try:
                if await driver.exists(selector) and await driver.is_visible_with_content(selector):
                    return selector
            except Exception:
                continue
        if clock() >= deadline:
            return None
        await driver.wait(SELECTOR_POLL_MS)


async def dismiss_consent(driver: PageDriver, *, nav_timeout_ms: int) -> bool:
    """Accept the cookie-consent interstitial when the page was redirected to it."""

    if selectors.CONSENT_HOST not in driver.url:
        return False

    LOGGER.info("Consent page detected, trying to accept...")
    for selector in selectors.CONSENT_ACCEPT:
        if await driver.click_first(selector):
            await driver.wait(CONSENT_CLICK_SETTLE_MS)
            LOGGER.info("Clicked consent button with selector: %s", selector)
            return True

    continue_url = parse_qs(urlsplit(driver.url).query).get("continue", [None])[0]
    if continue_url:
        LOGGER.warning("Could not find consent button, navigating to continue URL directly...")
        await driver.goto(continue_url, timeout_ms=nav_timeout_ms)
        return True

    LOGGER.warning("Could not dismiss consent page.")
    return False


@dataclass
class LinkDiscovery:
    """Implements ``fetch_links_for_query`` on top of an open page driver."""

    retry_policy: RetryPolicy
    scroller: FeedScroller = field(default_factory=FeedScroller)
    collector: LinkCollector = field(default_factory=LinkCollector)
    panner: ViewportPanner | None = None
    pan_steps: int = 0
    nav_timeout_ms: int = 20000
    selector_timeout_ms: int = 3000
    container_candidates: Sequence[str] = selectors.RESULTS_CONTAINER
    screenshot_dir: Path | None = None

    @classmethod
    def from_settings(cls, settings: Any, retry_policy: RetryPolicy) -> "LinkDiscovery":
        scroller = FeedScroller.from_settings(settings)
        collector = LinkCollector()
        return cls(
            retry_policy=retry_policy,
            scroller=scroller,
            collector=collector,
            panner=ViewportPanner.from_settings(settings, scroller, collector),
            pan_steps=settings.pan_steps,
            nav_timeout_ms=settings.nav_timeout_ms,
            selector_timeout_ms=settings.selector_timeout_ms,
            screenshot_dir=Path(settings.output_dir) if settings.debug_screenshots else None,
        )

    async def fetch_links_for_query(self, driver: PageDriver, query: Query) -> list[LinkRecord]:
        url = build_search_url(query.text)
        LOGGER.info("Navigating to search: %s (%s)", query.text, url)

        await self.retry_policy.run(
            lambda: driver.goto(url, timeout_ms=self.nav_timeout_ms),
            label=f"search navigation '{query.text}'",
        )
        try:
            await dismiss_consent(driver, nav_timeout_ms=self.nav_timeout_ms)
        except Exception as exc:
            LOGGER.warning("Error handling consent page: %s", exc)

        await driver.wait(PAGE_SETTLE_MS)
        await driver.wait_for_selector(selectors.MAIN_PANE, timeout_ms=MAIN_PANE_TIMEOUT_MS)

        container = await wait_for_any_selector(
            driver, self.container_candidates, self.selector_timeout_ms
        )
        if container is None:
            container = await self._resolve_via_fallback(driver, query)
            if container is None:
                LOGGER.warning("No feed found for %s after all attempts.", query.text)
                return []

        await self.scroller.scroll_to_end(driver, container)
        links = await self.collector.collect(driver, container)
        LOGGER.info("Extracted %s links from feed after scroll", len(links))

        if self.panner is not None and self.pan_steps > 0:
            links = await self.panner.pan_and_collect(driver, container, links, self.pan_steps)

        final_links = unique_links(links)
        LOGGER.info("Found %s unique links for %s", len(final_links), query.text)
        return final_links

    async def _resolve_via_fallback(self, driver: PageDriver, query: Query) -> str | None:
        await self._debug_screenshot(driver, query)

        fallback_url = build_fallback_url(query.text)
        LOGGER.warning("Feed not found for %s, trying fallback URL %s", query.text, fallback_url)
        await driver.goto(fallback_url, timeout_ms=self.nav_timeout_ms)
        await driver.wait(FALLBACK_SETTLE_MS)

        container = await wait_for_any_selector(
            driver, self.container_candidates, self.selector_timeout_ms
        )
        if container is not None:
            return container

        LOGGER.warning("No feed found for %s after fallback. Trying one more time...", query.text)
        await driver.wait(LAST_CHANCE_DELAY_MS)
        return await wait_for_any_selector(driver, self.container_candidates, self.selector_timeout_ms)

    async def _debug_screenshot(self, driver: PageDriver, query: Query) -> None:
        if self.screenshot_dir is None:
            return
        try:
            self.screenshot_dir.mkdir(parents=True, exist_ok=True)
            slug = "_".join(query.text.split())
            path = self.screenshot_dir / f"debug_{int(time.time() * 1000)}_{slug}.png"
            await driver.screenshot(str(path))
            LOGGER.warning("Screenshot saved to %s for debugging", path)
        except Exception as exc:
            LOGGER.debug("Could not take screenshot: %s", exc)
