"""Drag the map viewport around to surface results outside the first window."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import mapscraper.selectors as selectors
from mapscraper.driver import PageDriver
from mapscraper.extractors.schemas import LinkRecord
from mapscraper.logging_config import get_logger
from mapscraper.maps.feed import FeedScroller
from mapscraper.maps.links import LinkCollector

LOGGER = get_logger(__name__)

# (name, dx, dy) unit vectors, applied cyclically.
PAN_DIRECTIONS = (
    ("up", 0, -1),
    ("right", 1, 0),
    ("down", 0, 1),
    ("left", -1, 0),
)
FEED_POLL_INTERVAL_MS = 300


@dataclass
class ViewportPanner:
    scroller: FeedScroller
    collector: LinkCollector
    pixel_delta: int = 300
    drag_steps: int = 20
    settle_ms: int = 800
    poll_attempts: int = 3
    canvas_selector: str = selectors.MAP_CANVAS

    @classmethod
    def from_settings(
        cls, settings: Any, scroller: FeedScroller, collector: LinkCollector
    ) -> "ViewportPanner":
        return cls(
            scroller=scroller,
            collector=collector,
            pixel_delta=settings.pan_pixel_delta,
            drag_steps=settings.pan_drag_steps,
            settle_ms=settings.pan_settle_ms,
            poll_attempts=settings.pan_poll_attempts,
        )

    async def pan_and_collect(
        self,
        driver: PageDriver,
        container_selector: str,
        seed_links: Sequence[LinkRecord],
        steps: int,
    ) -> list[LinkRecord]:
        """Return *seed_links* plus everything found after each pan step.

        Duplicates across steps are kept; callers dedupe with ``unique_links``.
        """

        collected = list(seed_links)

        for index in range(steps):
            name, dx, dy = PAN_DIRECTIONS[index % len(PAN_DIRECTIONS)]
            try:
                box = await driver.bounding_box(self.canvas_selector)
                if box is None:
                    LOGGER.warning("Map canvas not found, stopping panning after %s steps.", index)
                    break
                center_x = box["x"] + box["width"] / 2
                center_y = box["y"] + box["height"] / 2

                await driver.mouse_move(center_x, center_y)
                await driver.mouse_down()
                try:
                    await driver.mouse_move(
                        center_x + dx * self.pixel_delta,
                        center_y + dy * self.pixel_delta,
                        steps=self.drag_steps,
                    )
                finally:
                    await self._release(driver)

                await driver.wait(self.settle_ms)
                if not await self._wait_for_feed(driver, container_selector):
                    LOGGER.warning(
                        "Feed did not update after pan step %s (%s), continuing anyway...",
                        index + 1,
                        name,
                    )

                await self.scroller.scroll_to_end(driver, container_selector)
                new_links = await self.collector.collect(driver, container_selector)
                collected.extend(new_links)
                LOGGER.info(
                    "Panning step %s/%s (%s) added %s links (total so far: %s)",
                    index + 1,
                    steps,
                    name,
                    len(new_links),
                    len(collected),
                )
            except Exception as exc:
                LOGGER.warning("Panning step %s failed: %s", index + 1, exc)

        return collected

    async def _wait_for_feed(self, driver: PageDriver, container_selector: str) -> bool:
        for _ in range(self.poll_attempts):
            try:
                count = await self.collector.count(driver, container_selector)
            except Exception:
                count = 0
            if count > 0:
                LOGGER.debug("Feed reports %s links after panning", count)
                return True
            await driver.wait(FEED_POLL_INTERVAL_MS)
        return False

    async def _release(self, driver: PageDriver) -> None:
        try:
            await driver.mouse_up()
        except Exception as exc:
            LOGGER.debug("Mouse release after pan failed: %s", exc)
