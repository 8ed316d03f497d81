"""Scroll the result feed until the list is exhausted."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import mapscraper.selectors as selectors
from mapscraper.driver import PageDriver
from mapscraper.logging_config import get_logger

LOGGER = get_logger(__name__)

LOADER_SETTLE_MS = 500
NUDGE_SETTLE_MS = 900


@dataclass(frozen=True)
class ScrollResult:
    reason: str
    loops: int
    nudges: int
    height: int


@dataclass
class FeedScroller:
    """Drive a scrollable feed to its end.

    A stable scroll height alone is not trusted as the end of the list: once
    the height has been unchanged for ``stabilize_loops`` loops, the explicit
    end-of-list marker is checked and, when missing, the feed is nudged up and
    back down to wake lazy loading before counting again.
    """

    step_ms: int = 150
    stabilize_loops: int = 2
    max_loops: int = 50
    nudge_px: int = 200
    loader_timeout_ms: int = 3000
    end_marker_selector: str = selectors.END_OF_LIST_SELECTOR
    end_of_list_texts: Sequence[str] = selectors.END_OF_LIST_TEXT
    loader_selector: str = selectors.LOADER
    fallback_containers: Sequence[str] = selectors.SCROLLABLE_FALLBACKS

    @classmethod
    def from_settings(cls, settings: Any) -> "FeedScroller":
        return cls(
            step_ms=settings.scroll_step_ms,
            stabilize_loops=settings.scroll_stabilize_loops,
            max_loops=settings.max_scroll_loops,
            nudge_px=settings.nudge_px,
            loader_timeout_ms=settings.loader_timeout_ms,
        )

    async def scroll_to_end(self, driver: PageDriver, container_selector: str) -> ScrollResult:
        last_height = 0
        stable_loops = 0
        loops = 0
        nudges = 0

        LOGGER.info("Starting feed scroll on selector: %s", container_selector)

        while loops < self.max_loops:
            height_before = await driver.scroll_to_bottom(container_selector, self.fallback_containers)
            loops += 1

            await self._wait_for_loader(driver)

            if height_before is None:
                LOGGER.warning(
                    "Feed element for selector %r is not scrollable on loop %s; nothing to scroll.",
                    container_selector,
                    loops,
                )
                return ScrollResult("not_scrollable", loops, nudges, last_height)

            height_after = await driver.scroll_height(container_selector, self.fallback_containers)

            if height_after == last_height:
                stable_loops += 1
                if stable_loops >= self.stabilize_loops:
                    if await self._end_marker_present(driver):
                        LOGGER.info("End of list detected by end-of-list marker after stabilization.")
                        return ScrollResult("end_marker", loops, nudges, height_after)

                    LOGGER.debug(
                        "Height unchanged for %s loops without end marker; nudging feed.",
                        stable_loops,
                    )
                    await driver.nudge_scroll(container_selector, self.nudge_px)
                    await driver.wait(NUDGE_SETTLE_MS)
                    nudges += 1
                    stable_loops = 0
            else:
                stable_loops = 0
                last_height = height_after

            if await self._end_marker_present(driver):
                LOGGER.info("End of list detected by end-of-list marker.")
                return ScrollResult("end_marker", loops, nudges, height_after)

            if await self._end_text_present(driver):
                LOGGER.info("End of list detected by text.")
                return ScrollResult("end_text", loops, nudges, height_after)

            if loops % 5 == 0:
                LOGGER.debug(
                    "feed scroll loop=%s height=%s stable=%s nudges=%s",
                    loops,
                    height_after,
                    stable_loops,
                    nudges,
                )

            await driver.wait(self.step_ms)

        LOGGER.info("Gave up scrolling after %s loops (height=%s).", loops, last_height)
        return ScrollResult("gave_up", loops, nudges, last_height)

    async def _wait_for_loader(self, driver: PageDriver) -> None:
        try:
            if await driver.loader_visible(self.loader_selector):
                LOGGER.debug("Loader detected, waiting for it to finish...")
                if not await driver.wait_for_loader_clear(
                    self.loader_selector, timeout_ms=self.loader_timeout_ms
                ):
                    LOGGER.debug("Loader wait timeout, continuing...")
        except Exception as exc:
            LOGGER.debug("Loader check failed: %s", exc)
        await driver.wait(LOADER_SETTLE_MS)

    async def _end_marker_present(self, driver: PageDriver) -> bool:
        text = await driver.element_text(self.end_marker_selector)
        if not text:
            return False
        return any(phrase in text for phrase in self.end_of_list_texts)

    async def _end_text_present(self, driver: PageDriver) -> bool:
        body = await driver.body_text()
        return any(phrase in body for phrase in self.end_of_list_texts)
