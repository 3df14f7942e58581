"""Blocking wait for the GitHub quota reset."""

from __future__ import annotations

import datetime as dt
import time
from typing import Callable, Mapping, Optional

from .config import RATE_LIMIT_MIN_WAIT_SEC
from .errors import BackoffInterrupted

MIN_WAIT_MS = RATE_LIMIT_MIN_WAIT_SEC * 1000
SECONDARY_LIMIT_MARKERS = ("secondary rate limit", "abuse")


def is_quota_exhausted(status: int, headers: Mapping[str, str], message: str = "") -> bool:
    """True for a 403/429 that carries GitHub's "no calls left" signal.

    Secondary ("abuse") limits are recognized by their message, since they can
    arrive with primary quota still left.
    """
    if status not in (403, 429):
        return False
    if str(headers.get("Retry-After") or "").strip().isdigit():
        return True
    lowered = (message or "").lower()
    if any(marker in lowered for marker in SECONDARY_LIMIT_MARKERS):
        return True
    remaining = headers.get("X-RateLimit-Remaining")
    if remaining is not None:
        return str(remaining).strip() == "0"
    # secondary limits answer 429 without quota headers
    return status == 429


def parse_wait_ms(reset_header: Optional[str], now_ms: int,
                  retry_after: Optional[str] = None) -> int:
    """Milliseconds until `reset_header` (epoch seconds), never less than the floor.

    An explicit `Retry-After` (seconds) takes precedence over the reset time.
    """
    if retry_after is not None and str(retry_after).strip().isdigit():
        return max(MIN_WAIT_MS, int(str(retry_after).strip()) * 1000)
    if reset_header is None:
        return MIN_WAIT_MS
    try:
        reset_epoch = int(str(reset_header).strip())
    except ValueError:
        return MIN_WAIT_MS
    return max(MIN_WAIT_MS, reset_epoch * 1000 - now_ms)


def describe_wait(wait_ms: int) -> str:
    mins = wait_ms // 60000
    if mins >= 1:
        return f"{mins} minutes"
    return f"{wait_ms // 1000} seconds"


class RateLimiter:
    """Sleeps until the declared quota reset; no other work runs meanwhile."""

    def __init__(self,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.time) -> None:
        self._sleep = sleep
        self._clock = clock
        self.waits = 0

    def wait_for_reset(self, headers: Mapping[str, str]) -> int:
        """Block until the reset named in `headers` has passed; return the wait in ms."""
        now_ms = int(self._clock() * 1000)
        reset = headers.get("X-RateLimit-Reset")
        remaining = headers.get("X-RateLimit-Remaining")
        if remaining is not None and str(remaining).strip() != "0":
            # primary quota is left, so the block is a secondary limit
            reset = None
        wait_ms = parse_wait_ms(reset, now_ms, headers.get("Retry-After"))
        stamp = dt.datetime.fromtimestamp(now_ms / 1000).strftime("%a %b %d %H:%M:%S %Y")
        print(f"\n[{stamp}] Rate Limit exceeded, pausing for... {describe_wait(wait_ms)}.\n")
        try:
            self._sleep(wait_ms / 1000.0)
        except KeyboardInterrupt as interrupt:
            raise BackoffInterrupted("interrupted while waiting for the rate limit to reset") from interrupt
        self.waits += 1
        return wait_ms


__all__ = ["MIN_WAIT_MS", "SECONDARY_LIMIT_MARKERS", "is_quota_exhausted", "parse_wait_ms", "describe_wait", "RateLimiter"]
