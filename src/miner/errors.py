"""Exception taxonomy and process exit statuses for the miner."""

from __future__ import annotations

from typing import Optional

EXIT_OK = 0
EXIT_CONFIG_FAILURE = 2
EXIT_INTERRUPTED = 3
EXIT_CRAWL_FAILURE = 5

ACCESS_BLOCKED_MARKER = "Repository access blocked"
CONTRIBUTORS_TOO_LARGE_MARKER = "too large to list contributors"
NOT_FOUND_STATUSES = {404, 410}
SERVER_ERROR_STATUSES = {500, 502}


class MinerError(Exception):
    """Base class for every condition the miner knows how to name."""


class ConfigurationError(MinerError):
    """Credentials, settings, or data files are unusable."""


class RemoteError(MinerError):
    """A GitHub call failed; `status` is -1 when no response was received."""

    def __init__(self, status: int, message: str, url: Optional[str] = None) -> None:
        super().__init__(f"HTTP {status}: {message}" if status >= 0 else message)
        self.status = status
        self.message = message or ""
        self.url = url


class TransientRemoteError(RemoteError):
    """Timeouts, dropped connections and 5xx responses."""


class TerminalRemoteError(RemoteError):
    """Responses that will not improve by asking again."""

    @property
    def access_blocked(self) -> bool:
        return ACCESS_BLOCKED_MARKER in self.message

    @property
    def contributors_too_large(self) -> bool:
        return CONTRIBUTORS_TOO_LARGE_MARKER in self.message

    @property
    def not_found(self) -> bool:
        return self.status in NOT_FOUND_STATUSES


class IterationError(MinerError):
    """Advancing a paged listing failed; `cause` is the underlying RemoteError."""

    def __init__(self, cause: RemoteError) -> None:
        super().__init__(str(cause))
        self.cause = cause


class RetriesExceeded(MinerError):
    """Raised by `with_retry` once the attempt budget is spent."""

    def __init__(self, last_error: BaseException) -> None:
        super().__init__(f"Operation has exceeded maximum number of retries: {last_error}")
        self.last_error = last_error


class BackoffInterrupted(MinerError):
    """A backoff or quota sleep was interrupted before it completed."""


def unwrap_remote(error: BaseException) -> Optional[RemoteError]:
    """Return the RemoteError behind `error`, looking through iteration/retry wrappers."""
    while True:
        if isinstance(error, RemoteError):
            return error
        if isinstance(error, IterationError):
            error = error.cause
        elif isinstance(error, RetriesExceeded):
            error = error.last_error
        else:
            return None


def is_unresolvable(error: RetriesExceeded) -> bool:
    """True when the exhausted retries ended on Not Found or a 500/502 server error."""
    remote = unwrap_remote(error.last_error)
    if remote is None:
        return False
    return remote.status in NOT_FOUND_STATUSES or remote.status in SERVER_ERROR_STATUSES


__all__ = [
    "EXIT_OK",
    "EXIT_CONFIG_FAILURE",
    "EXIT_INTERRUPTED",
    "EXIT_CRAWL_FAILURE",
    "MinerError",
    "ConfigurationError",
    "RemoteError",
    "TransientRemoteError",
    "TerminalRemoteError",
    "IterationError",
    "RetriesExceeded",
    "BackoffInterrupted",
    "unwrap_remote",
    "is_unresolvable",
]
