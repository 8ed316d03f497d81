"""Listing detail-page extraction: name, phones, address, category, website."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, NamedTuple, Sequence

import mapscraper.selectors as selectors
from mapscraper.driver import PageDriver
from mapscraper.extractors.dom_utils import human_wait
from mapscraper.extractors.schemas import (
    DetailRecord,
    ExtractionSource,
    LinkRecord,
    Query,
    RecordStatus,
)
from mapscraper.logging_config import get_logger
from mapscraper.normalizers import (
    DEFAULT_COUNTRY_CODE,
    clean_text,
    normalize_phone,
    strip_label_prefix,
)
from mapscraper.retry import RetryPolicy

LOGGER = get_logger(__name__)

Pause = Callable[[int, int], Awaitable[Any]]


class PhoneCandidate(NamedTuple):
    raw: str
    source: ExtractionSource


def _read_button(element: Mapping[str, str]) -> str | None:
    text = element.get("aria_label") or element.get("text")
    if not text:
        return None
    return clean_text(strip_label_prefix(text, selectors.PHONE_LABEL_PREFIXES))


def _read_tel_link(element: Mapping[str, str]) -> str | None:
    href = element.get("href") or ""
    if not href:
        return None
    return href.replace("tel:", "", 1).strip() or None


def _read_aria(element: Mapping[str, str]) -> str | None:
    label = element.get("aria_label")
    return clean_text(label) if label else None


@dataclass(frozen=True)
class PhoneStrategy:
    source: ExtractionSource
    selectors: tuple[str, ...]
    read: Callable[[Mapping[str, str]], str | None]

    async def run(self, driver: PageDriver) -> list[PhoneCandidate]:
        found: list[PhoneCandidate] = []
        for selector in self.selectors:
            try:
                elements = await driver.snapshot_elements(selector)
            except Exception as exc:
                LOGGER.debug("Phone selector %r failed: %s", selector, exc)
                continue
            for element in elements:
                raw = self.read(element)
                if raw:
                    found.append(PhoneCandidate(raw, self.source))
        return found


PRIMARY_PHONE_STRATEGIES = (
    PhoneStrategy(ExtractionSource.BUTTON, (selectors.PHONE_BUTTON,), _read_button),
    PhoneStrategy(ExtractionSource.LINK, (selectors.PHONE_LINK,), _read_tel_link),
)
FALLBACK_PHONE_STRATEGY = PhoneStrategy(
    ExtractionSource.ARIA,
    (selectors.ARIA_PHONE, selectors.ARIA_PHONE_FA),
    _read_aria,
)


async def extract_phone_candidates(
    driver: PageDriver,
    *,
    primary: Sequence[PhoneStrategy] = PRIMARY_PHONE_STRATEGIES,
    fallback: PhoneStrategy = FALLBACK_PHONE_STRATEGY,
) -> tuple[list[PhoneCandidate], int]:
    """Run every primary strategy, and the fallback only if they found nothing.

    Returns the candidates plus how many came from the primary strategies.
    """

    found: list[PhoneCandidate] = []
    for strategy in primary:
        found.extend(await strategy.run(driver))
    primary_count = len(found)
    if primary_count == 0:
        found.extend(await fallback.run(driver))
    return found, primary_count


async def detect_captcha(driver: PageDriver) -> bool:
    try:
        title = await driver.title()
        if any(marker in title for marker in selectors.CAPTCHA_TITLE_MARKERS):
            return True
        for selector in selectors.CAPTCHA_ELEMENTS:
            if await driver.exists(selector):
                return True
    except Exception:
        return False
    return False


def _dedupe(values: Sequence[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


@dataclass
class DetailExtractor:
    retry_policy: RetryPolicy
    nav_timeout_ms: int = 20000
    country_code: str = DEFAULT_COUNTRY_CODE
    pause: Pause = field(default=human_wait, repr=False)

    @classmethod
    def from_settings(cls, settings: Any, retry_policy: RetryPolicy) -> "DetailExtractor":
        return cls(
            retry_policy=retry_policy,
            nav_timeout_ms=settings.nav_timeout_ms,
            country_code=settings.country_code,
        )

    async def extract(self, driver: PageDriver, link: LinkRecord, query: Query) -> DetailRecord:
        """Visit *link* and return its record; the status encodes the outcome."""

        fields: dict[str, Any] = {
            "keyword": query.keyword,
            "region": query.region,
            "maps_url": link.href,
            "name": link.display_text or link.aria_label or None,
        }

        try:
            LOGGER.info("Processing: %s", link.href)
            await self.retry_policy.run(
                lambda: driver.goto(link.href, timeout_ms=self.nav_timeout_ms),
                label=link.href,
            )

            if await detect_captcha(driver):
                LOGGER.warning("Captcha detected for %s", link.href)
                return DetailRecord(**fields, status=RecordStatus.CAPTCHA)

            await self.pause(200, 600)

            name = await self._safe_text(driver, selectors.NAME)
            if name:
                fields["name"] = name

            candidates, primary_count = await extract_phone_candidates(driver)
            if primary_count == 0:
                LOGGER.debug("No phone button/link found, trying About tab...")
                if await self._open_about_tab(driver):
                    await self.pause(1000, 2000)
                    extra, _ = await extract_phone_candidates(driver)
                    candidates.extend(
                        PhoneCandidate(c.raw, ExtractionSource.ABOUT_TAB) for c in extra
                    )

            raw_strings = _dedupe([c.raw for c in candidates])
            phones = _dedupe(
                [p for p in (normalize_phone(raw, self.country_code) for raw in raw_strings) if p]
            )
            fields["raw_phone_strings"] = raw_strings
            fields["phones"] = phones
            fields["extraction_source"] = candidates[0].source if candidates else ExtractionSource.NONE

            fields["address"] = await self._extract_address(driver)
            fields["category"] = await self._safe_text(driver, selectors.CATEGORY_BUTTON)
            fields["website"] = await self._extract_website(driver)

            status = RecordStatus.OK if phones else RecordStatus.NO_PHONE
            return DetailRecord(**fields, status=status)
        except Exception as exc:
            LOGGER.error("Error processing %s: %s", link.href, exc)
            return DetailRecord(**fields, status=RecordStatus.ERROR, error=str(exc) or type(exc).__name__)

    async def _open_about_tab(self, driver: PageDriver) -> bool:
        for selector in (selectors.ABOUT_TAB, selectors.ABOUT_TAB_FA):
            try:
                if await driver.click_first(selector):
                    return True
            except Exception:
                continue
        return False

    async def _safe_text(self, driver: PageDriver, selector: str) -> str | None:
        try:
            text = await driver.element_text(selector)
        except Exception:
            return None
        cleaned = clean_text(text)
        return cleaned or None

    async def _extract_address(self, driver: PageDriver) -> str | None:
        try:
            elements = await driver.snapshot_elements(selectors.ADDRESS_BUTTON)
        except Exception:
            return None
        for element in elements:
            address = strip_label_prefix(element.get("aria_label"), selectors.ADDRESS_LABEL_PREFIXES)
            if address:
                return clean_text(address)
        return None

    async def _extract_website(self, driver: PageDriver) -> str | None:
        try:
            elements = await driver.snapshot_elements(selectors.WEBSITE_LINK)
        except Exception:
            return None
        for element in elements:
            href = (element.get("href") or "").strip()
            if href:
                return href
        return None
