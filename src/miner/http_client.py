"""GitHub REST client: typed errors, quota waits, and retry-safe explicit paging."""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Optional

import requests
from requests.utils import parse_header_links

from .config import BASE_URL, MAX_RATE_LIMIT_WAITS, PER_PAGE, REQUEST_TIMEOUT, USER_AGENT
from .errors import (
    ACCESS_BLOCKED_MARKER,
    CONTRIBUTORS_TOO_LARGE_MARKER,
    RemoteError,
    TerminalRemoteError,
    TransientRemoteError,
)
from .rate_limit import RateLimiter, is_quota_exhausted

TERMINAL_STATUSES = {404, 410, 451}


def error_message(resp: requests.Response) -> str:
    """Pull GitHub's `message` out of an error response, falling back to raw text."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error")
        if msg:
            return str(msg)
    return (resp.text or "")[:300]


def raise_for_github_status(resp: requests.Response, url: str) -> None:
    """Map a non-2xx response onto the miner's remote error taxonomy."""
    status = resp.status_code
    if 200 <= status < 300:
        return
    message = error_message(resp)
    if status >= 500:
        raise TransientRemoteError(status, message, url)
    if status in TERMINAL_STATUSES:
        raise TerminalRemoteError(status, message, url)
    if status in (403, 422) and (
        ACCESS_BLOCKED_MARKER in message or CONTRIBUTORS_TOO_LARGE_MARKER in message
    ):
        raise TerminalRemoteError(status, message, url)
    raise RemoteError(status, message, url)


def next_link(resp: requests.Response) -> Optional[str]:
    """Return the rel="next" URL from the Link header, if any."""
    header = (resp.headers or {}).get("Link")
    if not header:
        return None
    for link in parse_header_links(header):
        if link.get("rel") == "next" and link.get("url"):
            return link["url"]
    return None


class StepKind(enum.Enum):
    ITEM = "item"
    END = "end"
    ERROR = "error"


@dataclass(frozen=True)
class Step:
    """Outcome of one `Pager.advance()` call."""

    kind: StepKind
    item: Optional[Dict[str, Any]] = None
    error: Optional[RemoteError] = None


class Pager:
    """Walks a Link-paginated listing one item at a time.

    `advance()` never raises for remote failures; it returns an ERROR step and
    stays on the same page, so calling it again re-requests that page.
    """

    def __init__(self, client: "GitHubClient", url: str) -> None:
        self._client = client
        self._next_url: Optional[str] = url
        self._buffer: Deque[Dict[str, Any]] = deque()
        self.pages_fetched = 0

    def advance(self) -> Step:
        while not self._buffer:
            if self._next_url is None:
                return Step(StepKind.END)
            url = self._next_url
            try:
                resp = self._client.request("GET", url)
            except RemoteError as exc:
                return Step(StepKind.ERROR, error=exc)

            if resp.status_code == 204:
                batch = []
            else:
                try:
                    batch = resp.json()
                except ValueError:
                    return Step(StepKind.ERROR, error=TransientRemoteError(
                        resp.status_code, "response body is not valid JSON", url))
            if not isinstance(batch, list):
                return Step(StepKind.ERROR, error=RemoteError(
                    resp.status_code, "expected a JSON list", url))

            self._buffer.extend(entry for entry in batch if isinstance(entry, dict))
            self._next_url = next_link(resp)
            self.pages_fetched += 1
        return Step(StepKind.ITEM, item=self._buffer.popleft())


class GitHubClient:
    """Thin wrapper around the GitHub REST API used by the crawl engine."""

    def __init__(self,
                 token: Optional[str],
                 base_url: str = BASE_URL,
                 timeout: float = REQUEST_TIMEOUT,
                 rate_limiter: Optional[RateLimiter] = None,
                 max_rate_limit_waits: int = MAX_RATE_LIMIT_WAITS,
                 session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter()
        self.max_rate_limit_waits = max_rate_limit_waits
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": USER_AGENT,
            }
        )
        if token:
            self.session.headers["Authorization"] = f"token {token}"
        self.remaining: Optional[int] = None

    def _url(self, path: str) -> str:
        path = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url}{path}"

    def _record_quota(self, resp: requests.Response) -> None:
        raw = (resp.headers or {}).get("X-RateLimit-Remaining")
        if raw is not None and str(raw).strip().isdigit():
            self.remaining = int(str(raw).strip())

    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Perform one logical call, waiting out (and re-checking) quota exhaustion.

        Raises TransientRemoteError for network failures and 5xx answers,
        TerminalRemoteError for recognized dead ends, RemoteError otherwise.
        """
        waits = 0
        while True:
            try:
                resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as exc:
                raise TransientRemoteError(-1, str(exc), url) from exc

            self._record_quota(resp)
            headers = resp.headers or {}
            message = error_message(resp) if resp.status_code in (403, 429) else ""
            if is_quota_exhausted(resp.status_code, headers, message):
                if waits >= self.max_rate_limit_waits:
                    raise TransientRemoteError(
                        resp.status_code, f"rate limit still exceeded after {waits} waits", url)
                self.rate_limiter.wait_for_reset(headers)
                waits += 1
                continue

            raise_for_github_status(resp, url)
            return resp

    def get_json(self, path: str) -> Dict[str, Any]:
        url = self._url(path)
        resp = self.request("GET", url)
        try:
            data = resp.json()
        except ValueError as exc:
            raise TransientRemoteError(resp.status_code, "response body is not valid JSON", url) from exc
        if not isinstance(data, dict):
            raise RemoteError(resp.status_code, "expected a JSON object", url)
        return data

    def get_repository(self, full_name: str) -> Dict[str, Any]:
        """Full repository payload (language, created_at, counts, owner summary)."""
        return self.get_json(f"/repos/{full_name}")

    def get_user(self, login: str) -> Dict[str, Any]:
        """Full user profile (location, followers, following)."""
        return self.get_json(f"/users/{login}")

    def list_public_repositories(self, since: int) -> Pager:
        """All public repositories with id > `since`, in ascending id order."""
        return Pager(self, self._url(f"/repositories?since={int(since)}"))

    def list_contributors(self, full_name: str) -> Pager:
        return Pager(self, self._url(f"/repos/{full_name}/contributors?per_page={PER_PAGE}"))

    def rate_limit(self) -> Dict[str, Any]:
        """Core quota block from /rate_limit (this call is not counted against the quota)."""
        data = self.get_json("/rate_limit")
        core = (data.get("resources") or {}).get("core") or data.get("rate") or {}
        if isinstance(core.get("remaining"), int):
            self.remaining = core["remaining"]
        return core


__all__ = [
    "TERMINAL_STATUSES",
    "error_message",
    "raise_for_github_status",
    "next_link",
    "StepKind",
    "Step",
    "Pager",
    "GitHubClient",
]
