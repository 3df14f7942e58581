"""Entry points for running the repository miner."""

from __future__ import annotations

import sys
import traceback
from typing import List, Optional

from .checkpoint import Checkpoint
from .config import MinerSettings, parse_args, resolve_settings
from .dedup import load_discovered_users
from .engine import CrawlContext, CrawlEngine
from .errors import (
    EXIT_CONFIG_FAILURE,
    EXIT_CRAWL_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_OK,
    BackoffInterrupted,
    ConfigurationError,
    unwrap_remote,
)
from .http_client import GitHubClient
from .sinks import ErrorLog, Sink, ensure_data_files


def build_context(settings: MinerSettings, client: Optional[GitHubClient] = None) -> CrawlContext:
    """Check data files, load the checkpoint and discovered users, and wire the sinks."""
    ensure_data_files(settings.data_files())
    discovered = load_discovered_users(settings.discovered_users_path)
    checkpoint = Checkpoint.load(settings.checkpoint_path, default=settings.since)
    print(f"Resuming after repository id {checkpoint.since}")
    return CrawlContext(
        client=client or GitHubClient(settings.token),
        checkpoint=checkpoint,
        discovered=discovered,
        relationships=Sink(settings.relationship_path),
        repositories=Sink(settings.repository_path),
        users=Sink(settings.user_path),
        discovered_store=Sink(settings.discovered_users_path),
        errors=ErrorLog(settings.error_log_path),
        max_retries=settings.max_retries,
        backoff_base=settings.backoff_base_sec,
    )


def run_crawl(ctx: CrawlContext) -> int:
    """Run the engine and translate how it stopped into an exit status."""
    engine = CrawlEngine(ctx)
    try:
        stats = engine.run()
    except (BackoffInterrupted, KeyboardInterrupt) as exc:
        ctx.errors.log(engine.current, f"{str(exc) or type(exc).__name__}: PROGRAM INTERRUPTED.")
        return EXIT_INTERRUPTED
    except ConfigurationError as exc:
        print(f"[error] {exc}")
        return EXIT_CONFIG_FAILURE
    except Exception as exc:
        remote = unwrap_remote(exc)
        if remote is not None and remote.status == -1:
            print("Unable to reach GitHub. Please check network connectivity.")
        # the offending repository's id is deliberately not saved
        ctx.errors.log_detail(
            engine.current,
            f"{exc}: PROGRAM TERMINATED. Please Debug.",
            traceback.format_exc(),
        )
        return EXIT_CRAWL_FAILURE

    print(
        f"Processed {stats.repos_seen} repos: {stats.repos_recorded} recorded, "
        f"{stats.forks_skipped} forks, {stats.repos_skipped} skipped, "
        f"{stats.users_recorded} new users."
    )
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point; returns the process exit status."""
    try:
        settings = resolve_settings(parse_args(argv))
        ctx = build_context(settings)
    except ConfigurationError as exc:
        print(f"Error Loading configuration: {exc}")
        return EXIT_CONFIG_FAILURE
    return run_crawl(ctx)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
