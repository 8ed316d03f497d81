"""Shared browser handle with automatic relaunch after a disconnect."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from mapscraper.logging_config import get_logger
from mapscraper.playwright_env import close_browser, launch_browser

LOGGER = get_logger(__name__)

Launcher = Callable[[], Awaitable[Any]]


class BrowserSupervisor:
    """Owns the live browser; every task obtains it through ``acquire()``.

    The ``disconnected`` event is subscribed once per launch and schedules a
    background relaunch. Launch failures are retried forever with a fixed
    delay, since nothing else can proceed without a browser.
    """

    def __init__(
        self,
        launcher: Launcher,
        *,
        relaunch_delay: float = 10.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._launcher = launcher
        self._relaunch_delay = relaunch_delay
        self._sleep = sleep
        self._browser: Any | None = None
        self._lock = asyncio.Lock()
        self._closing = False
        self._relaunch_task: asyncio.Task[Any] | None = None
        self.launch_count = 0

    @classmethod
    def for_playwright(cls, playwright: Any, *, headless: bool, relaunch_delay: float) -> "BrowserSupervisor":
        async def _launch() -> Any:
            return await launch_browser(playwright, headless=headless)

        return cls(_launch, relaunch_delay=relaunch_delay)

    def _is_live(self) -> bool:
        if self._browser is None:
            return False
        try:
            return bool(self._browser.is_connected())
        except Exception:
            return False

    async def acquire(self) -> Any:
        """Return a connected browser, relaunching it first if necessary."""

        if self._is_live():
            return self._browser

        async with self._lock:
            if self._is_live():
                return self._browser

            stale = self._browser
            self._browser = None
            if stale is not None:
                LOGGER.info("Relaunching browser...")
                await close_browser(stale)

            while True:
                try:
                    browser = await self._launcher()
                except Exception as exc:
                    LOGGER.error(
                        "Failed to launch browser: %s. Retrying in %.0fs...",
                        exc,
                        self._relaunch_delay,
                    )
                    await self._sleep(self._relaunch_delay)
                    continue
                break

            browser.on("disconnected", self._on_disconnected)
            self._browser = browser
            self.launch_count += 1
            LOGGER.info("Browser launched (launch #%s).", self.launch_count)
            return browser

    def _on_disconnected(self, *_: Any) -> None:
        if self._closing:
            return
        LOGGER.warning("Browser disconnected! Will attempt to relaunch...")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._relaunch_task is None or self._relaunch_task.done():
            self._relaunch_task = loop.create_task(self.acquire())

    async def close(self) -> None:
        self._closing = True
        if self._relaunch_task is not None and not self._relaunch_task.done():
            self._relaunch_task.cancel()
            try:
                await self._relaunch_task
            except (asyncio.CancelledError, Exception):
                pass
        browser, self._browser = self._browser, None
        await close_browser(browser)
        LOGGER.info("Browser closed.")
