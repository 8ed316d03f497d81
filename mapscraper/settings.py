"""Configuration loading for the scraper.

Values come from ``DEFAULT_CONFIG`` deep-merged with an optional YAML file.
Browser flags can additionally be overridden through ``MAPSCRAPER_*``
environment variables (see ``playwright_env``).
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from mapscraper.errors import ConfigError
from mapscraper.logging_config import get_logger

LOGGER = get_logger(__name__)

IRAN_PROVINCES = [
    "تهران", "البرز", "قم", "قزوین", "گیلان", "مازندران", "گلستان",
    "خراسان رضوی", "خراسان شمالی", "خراسان جنوبی",
    "آذربایجان شرقی", "آذربایجان غربی", "اردبیل",
    "اصفهان", "کرمان", "کرمانشاه", "خوزستان", "بوشهر", "هرمزگان",
    "سیستان و بلوچستان", "یزد", "مرکزی", "زنجان", "همدان", "کردستان",
    "لرستان", "چهارمحال و بختیاری", "کهگیلویه و بویراحمد", "فارس", "ایلام", "سمنان",
]

DEFAULT_CONFIG: dict[str, Any] = {
    "concurrency": {"searchers": 2, "workers": 5},
    "timeouts": {"navigation_ms": 20000, "selector_ms": 3000, "loader_ms": 3000},
    "scroll": {"step_ms": 150, "stabilize_loops": 2, "max_loops": 50, "nudge_px": 200},
    "panning": {
        "steps": 2,
        "pixel_delta": 300,
        "drag_steps": 20,
        "settle_ms": 800,
        "poll_attempts": 3,
    },
    "retry": {"limit": 5, "base_delay": 2.0, "max_delay": 60.0, "network_delay": 10.0},
    "browser": {
        "headless": True,
        "block_resources": True,
        "relaunch_delay": 10.0,
        "debug_screenshots": False,
    },
    "output": {"dir": "output", "temp_dir": "output/temp", "flush_size": 5},
    "phone": {"country_code": "98"},
    "queries": {"keywords": ["مبلمان"], "regions": list(IRAN_PROVINCES)},
}


@dataclass(frozen=True)
class ScraperSettings:
    searchers: int = 2
    workers: int = 5
    nav_timeout_ms: int = 20000
    selector_timeout_ms: int = 3000
    loader_timeout_ms: int = 3000
    scroll_step_ms: int = 150
    scroll_stabilize_loops: int = 2
    max_scroll_loops: int = 50
    nudge_px: int = 200
    pan_steps: int = 2
    pan_pixel_delta: int = 300
    pan_drag_steps: int = 20
    pan_settle_ms: int = 800
    pan_poll_attempts: int = 3
    retry_limit: int = 5
    retry_delay_base: float = 2.0
    retry_delay_max: float = 60.0
    network_retry_delay: float = 10.0
    headless: bool = True
    block_resources: bool = True
    browser_relaunch_delay: float = 10.0
    debug_screenshots: bool = False
    output_dir: str = "output"
    temp_dir: str = "output/temp"
    flush_size: int = 5
    country_code: str = "98"
    keywords: tuple[str, ...] = ()
    regions: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ScraperSettings":
        """Build settings from a (merged) configuration mapping."""

        merged = _deep_merge(DEFAULT_CONFIG, config or {})

        def section(name: str) -> dict[str, Any]:
            value = merged.get(name) or {}
            if not isinstance(value, dict):
                raise ConfigError(f"Configuration section '{name}' must be a mapping.")
            return value

        concurrency = section("concurrency")
        timeouts = section("timeouts")
        scroll = section("scroll")
        panning = section("panning")
        retry = section("retry")
        browser = section("browser")
        output = section("output")
        queries = section("queries")

        return cls(
            searchers=_positive_int(concurrency.get("searchers"), "concurrency.searchers"),
            workers=_positive_int(concurrency.get("workers"), "concurrency.workers"),
            nav_timeout_ms=_positive_int(timeouts.get("navigation_ms"), "timeouts.navigation_ms"),
            selector_timeout_ms=_positive_int(timeouts.get("selector_ms"), "timeouts.selector_ms"),
            loader_timeout_ms=_positive_int(timeouts.get("loader_ms"), "timeouts.loader_ms"),
            scroll_step_ms=_non_negative_int(scroll.get("step_ms"), "scroll.step_ms"),
            scroll_stabilize_loops=_positive_int(scroll.get("stabilize_loops"), "scroll.stabilize_loops"),
            max_scroll_loops=_positive_int(scroll.get("max_loops"), "scroll.max_loops"),
            nudge_px=_non_negative_int(scroll.get("nudge_px"), "scroll.nudge_px"),
            pan_steps=_non_negative_int(panning.get("steps"), "panning.steps"),
            pan_pixel_delta=_positive_int(panning.get("pixel_delta"), "panning.pixel_delta"),
            pan_drag_steps=_positive_int(panning.get("drag_steps"), "panning.drag_steps"),
            pan_settle_ms=_non_negative_int(panning.get("settle_ms"), "panning.settle_ms"),
            pan_poll_attempts=_positive_int(panning.get("poll_attempts"), "panning.poll_attempts"),
            retry_limit=_positive_int(retry.get("limit"), "retry.limit"),
            retry_delay_base=_non_negative_float(retry.get("base_delay"), "retry.base_delay"),
            retry_delay_max=_non_negative_float(retry.get("max_delay"), "retry.max_delay"),
            network_retry_delay=_non_negative_float(retry.get("network_delay"), "retry.network_delay"),
            headless=bool(browser.get("headless", True)),
            block_resources=bool(browser.get("block_resources", True)),
            browser_relaunch_delay=_non_negative_float(
                browser.get("relaunch_delay"), "browser.relaunch_delay"
            ),
            debug_screenshots=bool(browser.get("debug_screenshots", False)),
            output_dir=str(output.get("dir") or "output"),
            temp_dir=str(output.get("temp_dir") or "output/temp"),
            flush_size=_positive_int(output.get("flush_size"), "output.flush_size"),
            country_code=str(section("phone").get("country_code") or "98").lstrip("+"),
            keywords=_string_tuple(queries.get("keywords"), "queries.keywords"),
            regions=_string_tuple(queries.get("regions"), "queries.regions"),
        )


def _deep_merge(default: Any, override: Any) -> Any:
    if not isinstance(default, dict) or not isinstance(override, dict):
        return deepcopy(override)

    merged: dict[str, Any] = deepcopy(default)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def _positive_int(value: Any, name: str) -> int:
    number = _non_negative_int(value, name)
    if number <= 0:
        raise ConfigError(f"{name} must be a positive integer (got {value!r}).")
    return number


def _non_negative_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer (got {value!r}).") from exc
    if number < 0:
        raise ConfigError(f"{name} must not be negative (got {value!r}).")
    return number


def _non_negative_float(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number (got {value!r}).") from exc
    if number < 0:
        raise ConfigError(f"{name} must not be negative (got {value!r}).")
    return number


def _string_tuple(value: Any, name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{name} must be a list of strings.")
    return tuple(str(item).strip() for item in value if str(item).strip())


def load_config(path: Path) -> dict[str, Any]:
    """Read *path* (YAML) and deep-merge it over ``DEFAULT_CONFIG``."""

    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file {path} must contain a mapping.")
    else:
        LOGGER.warning("Configuration file %s not found; using defaults", path)
        data = {}

    return _deep_merge(DEFAULT_CONFIG, data) if data else deepcopy(DEFAULT_CONFIG)


def load_settings(path: Path | None = None) -> ScraperSettings:
    config = load_config(path) if path is not None else deepcopy(DEFAULT_CONFIG)
    return ScraperSettings.from_config(config)


__all__ = [
    "DEFAULT_CONFIG",
    "IRAN_PROVINCES",
    "ScraperSettings",
    "load_config",
    "load_settings",
]
