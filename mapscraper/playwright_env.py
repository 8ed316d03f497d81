"""Centralised helpers for Playwright launch + fingerprint configuration."""

from __future__ import annotations

import os
import random
import shlex
from functools import lru_cache
from typing import Any

from playwright.async_api import Browser, Playwright

_FALSE_VALUES = {"0", "false", "no", "off"}

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0",
)
BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "media", "stylesheet"})


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def headless_enabled(default: bool = True) -> bool:
    """Return True if Playwright should run in headless mode."""

    return _as_bool(os.getenv("MAPSCRAPER_HEADLESS"), default)


def stealth_enabled() -> bool:
    """Return True when stealth evasion scripts should be applied."""

    return _as_bool(os.getenv("MAPSCRAPER_STEALTH"), True)


@lru_cache(maxsize=1)
def _stealth_instance():
    if not stealth_enabled():
        return None
    from playwright_stealth import Stealth

    lang_env = os.getenv("MAPSCRAPER_LANGS") or "fa-IR,fa,en-US,en"
    langs = tuple(entry.strip() for entry in lang_env.split(",") if entry.strip()) or ("en-US", "en")
    return Stealth(navigator_languages_override=langs[:2])


def apply_stealth(playwright: Playwright) -> None:
    """Hook the provided Playwright object with stealth evasions when enabled."""

    instance = _stealth_instance()
    if instance is None:
        return
    instance.hook_playwright_context(playwright)


def _proxy_config() -> dict[str, str] | None:
    raw = os.getenv("MAPSCRAPER_PROXY")
    if not raw:
        return None
    if "://" not in raw:
        return {"server": f"http://{raw}"}
    return {"server": raw}


def launch_kwargs(headless: bool = True) -> dict[str, Any]:
    """Return kwargs passed to chromium.launch."""

    args = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-accelerated-2d-canvas",
        "--disable-gpu",
        "--disable-blink-features=AutomationControlled",
        "--window-size=1920,1080",
    ]
    extra_args = os.getenv("MAPSCRAPER_CHROMIUM_ARGS")
    if extra_args:
        args.extend(shlex.split(extra_args))

    kwargs: dict[str, Any] = {
        "headless": headless,
        "args": args,
    }

    channel = os.getenv("MAPSCRAPER_BROWSER_CHANNEL")
    if channel:
        kwargs["channel"] = channel

    proxy = _proxy_config()
    if proxy:
        kwargs["proxy"] = proxy

    slow_mo = _env_int("MAPSCRAPER_SLOW_MO_MS", 0)
    if slow_mo > 0:
        kwargs["slow_mo"] = slow_mo

    return kwargs


async def launch_browser(playwright: Playwright, *, headless: bool = True) -> Browser:
    """Launch Chromium according to env overrides."""

    return await playwright.chromium.launch(**launch_kwargs(headless))


async def close_browser(browser: Browser | None) -> None:
    """Close the provided browser without raising."""

    if browser is None:
        return
    try:
        await browser.close()
    except Exception:
        pass


def random_context_options() -> dict[str, Any]:
    """Randomised user agent + viewport for a new browser context."""

    return {
        "user_agent": random.choice(USER_AGENTS),
        "viewport": {
            "width": 1366 + random.randint(0, 99),
            "height": 768 + random.randint(0, 99),
        },
    }


def apply_wait_policy(min_ms: int, max_ms: int) -> tuple[int, int]:
    """Scale pacing bounds by the MAPSCRAPER_WAIT_* environment overrides."""

    min_override = _env_int("MAPSCRAPER_WAIT_MIN_MS", min_ms)
    max_override = _env_int("MAPSCRAPER_WAIT_MAX_MS", max_ms)
    multiplier = max(_env_float("MAPSCRAPER_WAIT_MULTIPLIER", 1.0), 0.0)

    scaled_min = int(min_override * multiplier)
    scaled_max = int(max_override * multiplier)
    if scaled_max < scaled_min:
        scaled_max = scaled_min
    return scaled_min, scaled_max
