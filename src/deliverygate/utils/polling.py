"""Bounded poll loop for I/O-bound orchestration."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class PollTimeoutError(TimeoutError):
    """Raised when a poll loop exceeds its timeout."""


def poll_until(
    probe: Callable[[], _T | None],
    *,
    interval_seconds: float,
    timeout_seconds: float,
    description: str = "condition",
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> _T:
    """Call ``probe`` every ``interval_seconds`` until it returns non-None.

    The loop never outlives ``timeout_seconds``; exceeding it raises
    ``PollTimeoutError`` rather than retrying forever.
    """
    if interval_seconds <= 0 or timeout_seconds <= 0:
        raise ValueError("interval_seconds and timeout_seconds must be positive")

    deadline = clock() + timeout_seconds
    attempt = 0
    while True:
        attempt += 1
        value = probe()
        if value is not None:
            return value

        remaining = deadline - clock()
        if remaining <= 0:
            raise PollTimeoutError(
                f"Timed out after {timeout_seconds:g}s waiting for {description} "
                f"({attempt} attempt(s))"
            )
        logger.debug("waiting for %s (attempt %d)", description, attempt)
        sleep(min(interval_seconds, remaining))
