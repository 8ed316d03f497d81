"""Narrow DOM capability consumed by the discovery and extraction flows.

``PageDriver`` lists the only browser operations the algorithms rely on, so
they can run against a Playwright page in production and a fake in tests.
Read helpers on ``PlaywrightDriver`` swallow transient DOM errors and return
an empty value; navigation and pointer input propagate their errors.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol, Sequence

from playwright.async_api import Browser, Error as PlaywrightError, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from mapscraper.errors import PageLoadError
from mapscraper.logging_config import get_logger
from mapscraper.playwright_env import BLOCKED_RESOURCE_TYPES, random_context_options

LOGGER = get_logger(__name__)

# Distance below which a container is not considered scrollable.
SCROLLABLE_SLACK_PX = 50


class PageDriver(Protocol):
    @property
    def url(self) -> str: ...

    async def goto(self, url: str, *, timeout_ms: int) -> None: ...

    async def title(self) -> str: ...

    async def wait(self, ms: int) -> None: ...

    async def wait_for_selector(self, selector: str, *, timeout_ms: int) -> bool: ...

    async def exists(self, selector: str) -> bool: ...

    async def is_visible_with_content(self, selector: str) -> bool: ...

    async def scroll_to_bottom(self, selector: str, fallbacks: Sequence[str] = ()) -> int | None: ...

    async def scroll_height(self, selector: str, fallbacks: Sequence[str] = ()) -> int: ...

    async def nudge_scroll(self, selector: str, offset_px: int) -> None: ...

    async def loader_visible(self, selector: str) -> bool: ...

    async def wait_for_loader_clear(self, selector: str, *, timeout_ms: int) -> bool: ...

    async def element_text(self, selector: str) -> str | None: ...

    async def body_text(self) -> str: ...

    async def snapshot_elements(
        self, selector: str, *, within: str | None = None
    ) -> list[dict[str, str]]: ...

    async def count_elements(self, selectors: Sequence[str], *, within: str | None = None) -> int: ...

    async def bounding_box(self, selector: str) -> dict[str, float] | None: ...

    async def mouse_move(self, x: float, y: float, *, steps: int = 1) -> None: ...

    async def mouse_down(self) -> None: ...

    async def mouse_up(self) -> None: ...

    async def click_first(self, selector: str) -> bool: ...

    async def screenshot(self, path: str) -> None: ...


_SCROLL_TO_BOTTOM_JS = """
([sel, fallbacks, slack]) => {
    const scrollable = (el) => !!el && (el.scrollHeight || 0) > (el.clientHeight || 0) + slack;
    let el = sel ? document.querySelector(sel) : null;
    if (!scrollable(el)) {
        const candidates = fallbacks.flatMap((f) => Array.from(document.querySelectorAll(f)));
        el = candidates.find(scrollable) || el;
    }
    if (!scrollable(el)) return null;
    el.scrollTop = el.scrollHeight;
    return el.scrollHeight;
}
"""

_SCROLL_HEIGHT_JS = """
([sel, fallbacks, slack]) => {
    const scrollable = (el) => !!el && (el.scrollHeight || 0) > (el.clientHeight || 0) + slack;
    let el = sel ? document.querySelector(sel) : null;
    if (!scrollable(el)) {
        const candidates = fallbacks.flatMap((f) => Array.from(document.querySelectorAll(f)));
        el = candidates.find(scrollable) || el;
    }
    return el ? (el.scrollHeight || 0) : 0;
}
"""

_NUDGE_JS = """
async ([sel, offset]) => {
    const el = document.querySelector(sel);
    if (!el) return false;
    el.scrollTop = Math.max(0, el.scrollHeight - offset);
    await new Promise((resolve) => setTimeout(resolve, 250));
    el.scrollTop = el.scrollHeight;
    return true;
}
"""

_VISIBLE_WITH_CONTENT_JS = """
(sel) => {
    const el = document.querySelector(sel);
    if (!el) return false;
    const style = window.getComputedStyle(el);
    return style.display !== 'none' && style.visibility !== 'hidden'
        && el.offsetParent !== null && el.scrollHeight > 0;
}
"""

_LOADER_VISIBLE_JS = """
(sel) => Array.from(document.querySelectorAll(sel)).some((el) => {
    const style = window.getComputedStyle(el);
    return style.display !== 'none' && style.visibility !== 'hidden' && el.offsetParent;
})
"""

_LOADER_CLEAR_JS = """
(sel) => Array.from(document.querySelectorAll(sel)).every((el) => {
    const style = window.getComputedStyle(el);
    return style.display === 'none' || style.visibility === 'hidden' || !el.offsetParent;
})
"""

_SNAPSHOT_JS = """
([sel, within]) => {
    const root = within ? document.querySelector(within) : document;
    if (!root) return [];
    return Array.from(root.querySelectorAll(sel)).map((el) => ({
        href: el.href || el.getAttribute('href') || '',
        text: (el.innerText || el.textContent || '').trim(),
        aria_label: el.getAttribute('aria-label') || '',
    }));
}
"""

_COUNT_JS = """
([selectors, within]) => {
    const root = within ? document.querySelector(within) : document;
    if (!root) return 0;
    let count = 0;
    for (const sel of selectors) {
        try { count += root.querySelectorAll(sel).length; } catch (e) {}
    }
    return count;
}
"""


class PlaywrightDriver:
    """``PageDriver`` backed by a Playwright ``Page``."""

    def __init__(self, page: Page) -> None:
        self.page = page

    @property
    def url(self) -> str:
        return self.page.url

    async def goto(self, url: str, *, timeout_ms: int) -> None:
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightError as exc:
            raise PageLoadError(f"Navigation failed: {exc}", url=url) from exc

    async def title(self) -> str:
        try:
            return await self.page.title()
        except Exception:
            return ""

    async def wait(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def wait_for_selector(self, selector: str, *, timeout_ms: int) -> bool:
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def exists(self, selector: str) -> bool:
        try:
            return await self.page.query_selector(selector) is not None
        except Exception:
            return False

    async def is_visible_with_content(self, selector: str) -> bool:
        return bool(await self._safe_evaluate(_VISIBLE_WITH_CONTENT_JS, selector))

    async def scroll_to_bottom(self, selector: str, fallbacks: Sequence[str] = ()) -> int | None:
        value = await self._safe_evaluate(
            _SCROLL_TO_BOTTOM_JS, [selector, list(fallbacks), SCROLLABLE_SLACK_PX]
        )
        return _as_int(value)

    async def scroll_height(self, selector: str, fallbacks: Sequence[str] = ()) -> int:
        value = await self._safe_evaluate(
            _SCROLL_HEIGHT_JS, [selector, list(fallbacks), SCROLLABLE_SLACK_PX]
        )
        return _as_int(value) or 0

    async def nudge_scroll(self, selector: str, offset_px: int) -> None:
        await self._safe_evaluate(_NUDGE_JS, [selector, offset_px])

    async def loader_visible(self, selector: str) -> bool:
        return bool(await self._safe_evaluate(_LOADER_VISIBLE_JS, selector))

    async def wait_for_loader_clear(self, selector: str, *, timeout_ms: int) -> bool:
        try:
            await self.page.wait_for_function(_LOADER_CLEAR_JS, arg=selector, timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def element_text(self, selector: str) -> str | None:
        try:
            handle = await self.page.query_selector(selector)
            if handle is None:
                return None
            text = await handle.inner_text()
        except Exception:
            return None
        return text.strip() if text else None

    async def body_text(self) -> str:
        value = await self._safe_evaluate("() => document.body ? document.body.innerText : ''")
        return value or ""

    async def snapshot_elements(
        self, selector: str, *, within: str | None = None
    ) -> list[dict[str, str]]:
        value = await self._safe_evaluate(_SNAPSHOT_JS, [selector, within])
        return list(value or [])

    async def count_elements(self, selectors: Sequence[str], *, within: str | None = None) -> int:
        return _as_int(await self._safe_evaluate(_COUNT_JS, [list(selectors), within])) or 0

    async def bounding_box(self, selector: str) -> dict[str, float] | None:
        try:
            handle = await self.page.query_selector(selector)
            if handle is None:
                return None
            box = await handle.bounding_box()
        except Exception:
            return None
        return dict(box) if box else None

    async def mouse_move(self, x: float, y: float, *, steps: int = 1) -> None:
        await self.page.mouse.move(x, y, steps=steps)

    async def mouse_down(self) -> None:
        await self.page.mouse.down()

    async def mouse_up(self) -> None:
        await self.page.mouse.up()

    async def click_first(self, selector: str) -> bool:
        try:
            handle = await self.page.query_selector(selector)
            if handle is None:
                return False
            await handle.click()
            return True
        except Exception:
            return False

    async def screenshot(self, path: str) -> None:
        await self.page.screenshot(path=path, full_page=True)

    async def _safe_evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            if arg is None:
                return await self.page.evaluate(script)
            return await self.page.evaluate(script, arg)
        except Exception:
            return None


def _as_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


async def _block_heavy_resources(route: Any) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


@asynccontextmanager
async def open_page(
    browser: Browser,
    *,
    block_resources: bool = True,
    nav_timeout_ms: int = 20000,
) -> AsyncIterator[PlaywrightDriver]:
    """Open an isolated context + page and yield it wrapped as a driver."""

    context = await browser.new_context(**random_context_options())
    page = None
    try:
        context.set_default_navigation_timeout(nav_timeout_ms)
        if block_resources:
            await context.route("**/*", _block_heavy_resources)
        page = await context.new_page()
        yield PlaywrightDriver(page)
    finally:
        if page is not None:
            try:
                await page.close()
            except Exception as exc:
                LOGGER.warning("Failed to close page: %s", exc)
        try:
            await context.close()
        except Exception as exc:
            LOGGER.warning("Failed to close context: %s", exc)
