"""Retry-with-classification helper wrapped around every GitHub call the miner makes."""

from __future__ import annotations

import enum
import time
from typing import Callable, Optional, TypeVar

from .config import BACKOFF_BASE_SEC
from .errors import (
    BackoffInterrupted,
    RetriesExceeded,
    TerminalRemoteError,
    TransientRemoteError,
    unwrap_remote,
)

T = TypeVar("T")


class Outcome(enum.Enum):
    """What a classifier wants done with a failed attempt."""

    RETRY = "retry"
    SKIP = "skip"
    FATAL = "fatal"


Classifier = Callable[[Exception], Outcome]


def backoff_delay(attempt: int, base: float = BACKOFF_BASE_SEC) -> float:
    """Seconds to wait before retry number `attempt` (1-based): base * attempt**2."""
    return base * attempt * attempt


def retry_remote(error: Exception) -> Outcome:
    """Default classifier: retry transient and terminal remote failures, anything else is fatal.

    A plain RemoteError (bad credentials, malformed request) is outside the
    failure model and must stop the crawl.
    """
    remote = unwrap_remote(error)
    if isinstance(remote, (TransientRemoteError, TerminalRemoteError)):
        return Outcome.RETRY
    return Outcome.FATAL


def with_retry(max_attempts: int,
               action: Callable[[], T],
               classify: Classifier = retry_remote,
               *,
               base_wait: float = BACKOFF_BASE_SEC,
               sleep: Callable[[float], None] = time.sleep) -> Optional[T]:
    """Run `action` until it succeeds, the classifier gives up, or retries run out.

    Returns the action's result, or None when the classifier answers SKIP.
    FATAL re-raises the original exception. A RETRY answer after
    `max_attempts` retries raises RetriesExceeded chained to the last error.
    """
    attempt = 0
    while True:
        try:
            return action()
        except Exception as exc:
            outcome = classify(exc)
            if outcome is Outcome.FATAL:
                raise
            if outcome is Outcome.SKIP:
                return None
            if attempt >= max_attempts:
                raise RetriesExceeded(exc) from exc

            attempt += 1
            delay = backoff_delay(attempt, base_wait)
            print(f"[retry {attempt}/{max_attempts}] {exc} -> sleep {delay:.1f}s")
            try:
                sleep(delay)
            except KeyboardInterrupt as interrupt:
                raise BackoffInterrupted(f"interrupted while waiting {delay:.1f}s to retry") from interrupt


__all__ = ["Outcome", "Classifier", "backoff_delay", "retry_remote", "with_retry"]
