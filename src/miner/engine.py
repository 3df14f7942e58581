"""Crawl engine: walks /repositories in id order and records repos, owners and contributors.

Per repository the engine moves through FETCHING_PAGE -> PROCESSING_ITEM ->
PROCESSING_OWNER -> PROCESSING_CONTRIBUTORS -> PERSIST_AND_ADVANCE. Recognized
dead ends are absorbed at the smallest scope that contains them (a single
contributor, else the whole repository); anything else escapes `run()` with
the checkpoint still pointing at the last repository that was fully handled.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .checkpoint import Checkpoint
from .config import BACKOFF_BASE_SEC, MAX_RETRIES
from .dedup import DedupSet
from .errors import (
    IterationError,
    RemoteError,
    RetriesExceeded,
    TerminalRemoteError,
    is_unresolvable,
    unwrap_remote,
)
from .http_client import GitHubClient, Step, StepKind
from .retry import Classifier, Outcome, retry_remote, with_retry
from .sinks import (
    ErrorLog,
    Sink,
    format_discovered,
    format_relationship,
    format_repository,
    format_user,
)

T = TypeVar("T")
BANNER = "*" * 88


class CrawlState(enum.Enum):
    FETCHING_PAGE = "fetching_page"
    PROCESSING_ITEM = "processing_item"
    PROCESSING_OWNER = "processing_owner"
    PROCESSING_CONTRIBUTORS = "processing_contributors"
    PERSIST_AND_ADVANCE = "persist_and_advance"
    DONE = "done"
    TERMINATED = "terminated"


@dataclass
class CrawlContext:
    """Everything a crawl mutates or talks to, built once at startup."""

    client: GitHubClient
    checkpoint: Checkpoint
    discovered: DedupSet[int, str]
    relationships: Sink
    repositories: Sink
    users: Sink
    discovered_store: Sink
    errors: ErrorLog
    max_retries: int = MAX_RETRIES
    backoff_base: float = BACKOFF_BASE_SEC
    sleep: Callable[[float], None] = time.sleep


@dataclass
class CrawlStats:
    repos_seen: int = 0
    forks_skipped: int = 0
    repos_recorded: int = 0
    repos_skipped: int = 0
    users_recorded: int = 0
    contributor_failures: int = 0


def classify_repo_details(error: Exception) -> Outcome:
    """Blocked repositories are skipped outright; other remote failures are retried."""
    remote = unwrap_remote(error)
    if isinstance(remote, TerminalRemoteError) and remote.access_blocked:
        return Outcome.SKIP
    return retry_remote(error)


def classify_contributors(error: Exception) -> Outcome:
    """An oversized contributor list ends the listing; other remote failures are retried."""
    remote = unwrap_remote(error)
    if isinstance(remote, TerminalRemoteError) and remote.contributors_too_large:
        return Outcome.SKIP
    return retry_remote(error)


def _lift(step: Step) -> Step:
    # hand ERROR steps to with_retry as exceptions so the classifier sees them
    if step.kind is StepKind.ERROR:
        raise IterationError(step.error)
    return step


def format_quota(core: Dict[str, Any]) -> str:
    if not core:
        return "rate limit unavailable"
    return (
        f"GHRateLimit{{remaining={core.get('remaining')}, limit={core.get('limit')}, "
        f"resetDate={time.ctime(core['reset']) if core.get('reset') else None}}}"
    )


class CrawlEngine:
    """Single-threaded crawl over the public repository listing."""

    def __init__(self, ctx: CrawlContext) -> None:
        self.ctx = ctx
        self.state = CrawlState.FETCHING_PAGE
        self.stats = CrawlStats()
        # id of the repository being handled; tags every error log line
        self.current = ctx.checkpoint.since

    @property
    def since(self) -> int:
        return self.ctx.checkpoint.since

    def _retry(self, action: Callable[[], T], classify: Classifier) -> Optional[T]:
        return with_retry(
            self.ctx.max_retries,
            action,
            self._logged(classify),
            base_wait=self.ctx.backoff_base,
            sleep=self.ctx.sleep,
        )

    def _logged(self, classify: Classifier) -> Classifier:
        def _classify(error: Exception) -> Outcome:
            outcome = classify(error)
            if outcome is Outcome.SKIP:
                self.ctx.errors.log(self.current, f"{error}: SKIPPED.")
            elif outcome is Outcome.RETRY:
                self.ctx.errors.log(self.current, str(error))
            return outcome
        return _classify

    def banner(self, label: str) -> None:
        try:
            core = self.ctx.client.rate_limit()
        except RemoteError as exc:
            print(f"[warn] unable to read rate limit: {exc}")
            core = {}
        print(BANNER)
        print(f"{label}:\t{format_quota(core)}")
        if label == "End":
            print(f"Since:\t{self.since}")
        print(BANNER)

    def run(self) -> CrawlStats:
        """Crawl from the checkpoint to the end of the listing."""
        try:
            self.banner("Start")
            listing = self.ctx.client.list_public_repositories(self.since)
            while True:
                self.state = CrawlState.FETCHING_PAGE
                step = self._retry(lambda: _lift(listing.advance()), retry_remote)
                if step is None or step.kind is StepKind.END:
                    break
                self.process_repository(step.item)
        except BaseException:
            self.state = CrawlState.TERMINATED
            raise
        self.state = CrawlState.DONE
        self.banner("End")
        return self.stats

    def process_repository(self, summary: Dict[str, Any]) -> None:
        """Handle one listing entry and move the checkpoint past it."""
        repo_id = int(summary["id"])
        self.current = repo_id
        self.stats.repos_seen += 1

        # forks are server-side clones; only their id is accounted for
        if summary.get("fork"):
            self.stats.forks_skipped += 1
            self._persist(repo_id)
            return

        self.state = CrawlState.PROCESSING_ITEM
        try:
            if not self._record_repository(repo_id, summary):
                self.stats.repos_skipped += 1
        except RetriesExceeded as exc:
            if not is_unresolvable(exc):
                raise
            self.ctx.errors.log(repo_id, f"{exc}: Could not resolve problem. SKIPPED.")
            self.stats.repos_skipped += 1
        self._persist(repo_id)

    def _record_repository(self, repo_id: int, summary: Dict[str, Any]) -> bool:
        client = self.ctx.client
        full_name = summary["full_name"]

        details = self._retry(lambda: client.get_repository(full_name), classify_repo_details)
        if details is None:
            return False

        self.state = CrawlState.PROCESSING_OWNER
        owner_ref = details.get("owner") or summary.get("owner") or {}
        owner_login = owner_ref.get("login")
        if not owner_login:
            self.ctx.errors.log(repo_id, "Repository has no owner login: SKIPPED.")
            return False
        owner = self._retry(lambda: client.get_user(owner_login), retry_remote)
        owner_id = owner["id"]
        self.process_user(owner, populated=True)
        user_ids: List[int] = [owner_id]

        self.state = CrawlState.PROCESSING_CONTRIBUTORS
        user_ids.extend(self._collect_contributors(full_name, owner_id))

        relationship = format_relationship(repo_id, user_ids)
        self.ctx.relationships.append(relationship)
        self.ctx.repositories.append(format_repository(repo_id, details))
        remaining = client.remaining if client.remaining is not None else "?"
        print(f"({remaining}) {relationship}")
        self.stats.repos_recorded += 1
        return True

    def _collect_contributors(self, full_name: str, owner_id: int) -> List[int]:
        listing = self.ctx.client.list_contributors(full_name)
        collected: List[int] = []
        while True:
            step = self._retry(lambda: _lift(listing.advance()), classify_contributors)
            if step is None or step.kind is StepKind.END:
                return collected

            contributor = step.item or {}
            contributor_id = contributor.get("id")
            if contributor_id is None or contributor_id == owner_id:
                continue
            try:
                self.process_user(contributor, populated=False)
            except (RemoteError, RetriesExceeded) as exc:
                self.stats.contributor_failures += 1
                self.ctx.errors.log(self.current, f"{exc}: Retrieving user {contributor_id} failed.")
                continue
            collected.append(contributor_id)

    def process_user(self, ref: Dict[str, Any], populated: bool) -> bool:
        """Record a user the first time its id is seen; return True if a record was written.

        `populated` users already carry location and follower counts; the rest
        are fetched by login. The id is claimed before fetching, so a user whose
        profile cannot be fetched is not attempted again during this run.
        """
        user_id = ref.get("id")
        login = ref.get("login")
        if not self.ctx.discovered.put(user_id, login):
            return False

        if populated:
            user = ref
        else:
            user = self._retry(lambda: self.ctx.client.get_user(login), retry_remote)
        if user is None:
            return False

        self.ctx.discovered_store.append(format_discovered(user_id, user.get("login") or login))
        self.ctx.users.append(format_user(user))
        self.stats.users_recorded += 1
        return True

    def _persist(self, repo_id: int) -> None:
        self.state = CrawlState.PERSIST_AND_ADVANCE
        self.ctx.checkpoint.advance_and_save(repo_id)


__all__ = [
    "CrawlState",
    "CrawlContext",
    "CrawlStats",
    "CrawlEngine",
    "classify_repo_details",
    "classify_contributors",
    "format_quota",
]
