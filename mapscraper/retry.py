"""Retry helper that backs off differently for network and other failures.

Network failures (connection resets, DNS errors, timeouts, a closed browser)
wait ``network_delay * attempt``; everything else waits
``base_delay * 2 ** (attempt - 1)``. Both are capped at ``max_delay`` and carry
no jitter, so the schedule is fully determined by the attempt index.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt

from mapscraper.logging_config import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

NETWORK_ERROR_MARKERS = (
    "net::err",
    "network",
    "timeout",
    "econnreset",
    "econnrefused",
    "enotfound",
    "etimedout",
    "socket",
    "connection",
    "disconnected",
    "failed to fetch",
    "navigation timeout",
    "target closed",
    "browser has been closed",
)


def is_network_error(exc: BaseException | None) -> bool:
    """Return True when *exc* looks like a connectivity problem."""

    if exc is None:
        return False
    message = str(exc).lower()
    return any(marker in message for marker in NETWORK_ERROR_MARKERS)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    base_delay: float = 2.0
    max_delay: float = 60.0
    network_delay: float = 10.0
    sleep: Callable[[float], Awaitable[Any]] = field(
        default=asyncio.sleep, repr=False, compare=False
    )

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> "RetryPolicy":
        values = {
            "max_attempts": settings.retry_limit,
            "base_delay": settings.retry_delay_base,
            "max_delay": settings.retry_delay_max,
            "network_delay": settings.network_retry_delay,
        }
        values.update(overrides)
        return cls(**values)

    def wait_for(self, attempt: int, exc: BaseException | None) -> float:
        """Seconds to wait after failed attempt number *attempt* (1-based)."""

        if is_network_error(exc):
            return min(self.network_delay * attempt, self.max_delay)
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def _wait(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        return self.wait_for(retry_state.attempt_number, exc)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
        LOGGER.warning(
            "Retry %s/%s failed: %s.%s Waiting %.1fs...",
            retry_state.attempt_number,
            self.max_attempts,
            exc,
            " (network error - longer wait)" if is_network_error(exc) else "",
            wait,
        )

    async def run(self, operation: Callable[[], Awaitable[T]], *, label: str | None = None) -> T:
        """Await *operation* until it succeeds or attempts run out."""

        retrying = AsyncRetrying(
            sleep=self.sleep,
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=self._wait,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await operation()
        except Exception as exc:
            LOGGER.error(
                "All %s retries exhausted%s. Last error: %s",
                self.max_attempts,
                f" for {label}" if label else "",
                exc,
            )
            raise
        raise RuntimeError("retry loop ended without a result")  # pragma: no cover


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    *,
    network_delay: float = 10.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Functional shortcut for ``RetryPolicy(...).run(operation)``."""

    policy = RetryPolicy(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        network_delay=network_delay,
        sleep=sleep,
    )
    return await policy.run(operation)


__all__ = ["NETWORK_ERROR_MARKERS", "RetryPolicy", "is_network_error", "retry_async"]
