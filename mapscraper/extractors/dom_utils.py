"""Randomised pauses between actions on map pages."""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable

from mapscraper.playwright_env import apply_wait_policy

Sleep = Callable[[float], Awaitable[Any]]


def pick_delay_ms(min_ms: int, max_ms: int, *, obey_policy: bool = True) -> int:
    low = max(min_ms, 0)
    high = max(max_ms, low)
    if obey_policy:
        low, high = apply_wait_policy(low, high)
    return random.randint(low, high)


async def human_wait(
    min_ms: int = 350,
    max_ms: int = 900,
    *,
    obey_policy: bool = True,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """Pause for a random delay in ``[min_ms, max_ms]`` and return it in milliseconds.

    With ``obey_policy`` the bounds go through the ``MAPSCRAPER_WAIT_*`` overrides first.
    """

    delay_ms = pick_delay_ms(min_ms, max_ms, obey_policy=obey_policy)
    await sleep(delay_ms / 1000)
    return delay_ms
