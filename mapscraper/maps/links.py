"""Collect listing links from inside the result feed."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

import mapscraper.selectors as selectors
from mapscraper.driver import PageDriver
from mapscraper.extractors.schemas import LinkRecord
from mapscraper.logging_config import get_logger

LOGGER = get_logger(__name__)


def link_from_anchor(anchor: Mapping[str, str], path_fragment: str) -> LinkRecord | None:
    href = (anchor.get("href") or "").strip()
    if not href or path_fragment not in href:
        return None
    aria_label = (anchor.get("aria_label") or "").strip()
    text = (anchor.get("text") or "").strip() or aria_label
    return LinkRecord(href=href, display_text=text, aria_label=aria_label)


def unique_links(
    links: Iterable[LinkRecord],
    path_fragment: str = selectors.LISTING_PATH_FRAGMENT,
) -> list[LinkRecord]:
    """Keep the first link per normalised href, preserving discovery order."""

    unique: dict[str, LinkRecord] = {}
    for link in links:
        if path_fragment not in link.href:
            continue
        unique.setdefault(link.key, link)
    return list(unique.values())


@dataclass
class LinkCollector:
    link_selectors: Sequence[str] = selectors.PLACE_LINK
    path_fragment: str = selectors.LISTING_PATH_FRAGMENT

    async def collect(self, driver: PageDriver, container_selector: str) -> list[LinkRecord]:
        """Return unique listing links found under *container_selector* only."""

        unique: dict[str, LinkRecord] = {}
        for selector in self.link_selectors:
            try:
                anchors = await driver.snapshot_elements(selector, within=container_selector)
            except Exception as exc:
                LOGGER.debug("Link selector %r failed: %s", selector, exc)
                continue
            for anchor in anchors:
                link = link_from_anchor(anchor, self.path_fragment)
                if link is not None:
                    unique.setdefault(link.key, link)
        return list(unique.values())

    async def count(self, driver: PageDriver, container_selector: str) -> int:
        return await driver.count_elements(self.link_selectors, within=container_selector)
