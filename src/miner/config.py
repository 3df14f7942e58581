"""Central configuration constants and runtime settings for the repository miner."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from src.secrets import github_token_from_secrets, load_local_secrets

from .errors import ConfigurationError

_SECRETS = load_local_secrets()
GITHUB_TOKEN: Optional[str] = github_token_from_secrets(_SECRETS) or os.getenv("GITHUB_TOKEN") or None
USER_AGENT = "github-repo-miner/1.0"
BASE_URL = "https://api.github.com"
PER_PAGE = 100
REQUEST_TIMEOUT = 90
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
BACKOFF_BASE_SEC = float(os.getenv("BACKOFF_BASE_SEC", "1"))
RATE_LIMIT_MIN_WAIT_SEC = 10
MAX_RATE_LIMIT_WAITS = int(os.getenv("MAX_RATE_LIMIT_WAITS", "5"))
DATA_DIR = os.getenv("MINER_DATA_DIR", "./data")
INITIAL_SINCE = int(os.getenv("MINER_SINCE", str(_SECRETS.get("since", 0))))

RELATIONSHIP_FILE = "Dataset1.txt"
REPOSITORY_FILE = "Dataset2.txt"
USER_FILE = "Dataset3.txt"
ERROR_LOG_FILE = "ErrorLog.txt"
DISCOVERED_USERS_FILE = "DiscoveredUsersSet.txt"
CHECKPOINT_FILE = "checkpoint.json"


@dataclass(frozen=True)
class MinerSettings:
    """Resolved runtime settings for a crawl."""

    token: str
    data_dir: Path
    since: int
    max_retries: int
    backoff_base_sec: float

    @property
    def relationship_path(self) -> Path:
        return self.data_dir / RELATIONSHIP_FILE

    @property
    def repository_path(self) -> Path:
        return self.data_dir / REPOSITORY_FILE

    @property
    def user_path(self) -> Path:
        return self.data_dir / USER_FILE

    @property
    def error_log_path(self) -> Path:
        return self.data_dir / ERROR_LOG_FILE

    @property
    def discovered_users_path(self) -> Path:
        return self.data_dir / DISCOVERED_USERS_FILE

    @property
    def checkpoint_path(self) -> Path:
        return self.data_dir / CHECKPOINT_FILE

    def data_files(self) -> List[Path]:
        return [
            self.relationship_path,
            self.repository_path,
            self.user_path,
            self.error_log_path,
            self.discovered_users_path,
        ]


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the CLI parser used by the miner entry point."""

    parser = argparse.ArgumentParser(
        description="Crawl public GitHub repositories and their users into flat datasets.",
    )
    parser.add_argument("--data-dir", default=DATA_DIR)
    parser.add_argument("--token", default=GITHUB_TOKEN)
    parser.add_argument(
        "--since",
        type=int,
        default=None,
        help="repository id to start after when no checkpoint exists yet",
    )
    parser.add_argument("--max-retries", type=int, default=MAX_RETRIES)
    parser.add_argument("--backoff-base", type=float, default=BACKOFF_BASE_SEC)
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; accepts argv overrides for testing."""

    parser = build_arg_parser()
    return parser.parse_args(argv)


def resolve_settings(args: Optional[argparse.Namespace] = None) -> MinerSettings:
    """Return immutable settings, refusing to run without an authentication token."""

    args = args or parse_args([])
    token = (args.token or "").strip()
    if not token:
        raise ConfigurationError("No authentication token found.")
    if args.max_retries < 0:
        raise ConfigurationError(f"max retries must be >= 0, got {args.max_retries}")

    since = INITIAL_SINCE if args.since is None else int(args.since)
    return MinerSettings(
        token=token,
        data_dir=Path(args.data_dir),
        since=since,
        max_retries=int(args.max_retries),
        backoff_base_sec=float(args.backoff_base),
    )


__all__ = [
    "GITHUB_TOKEN",
    "USER_AGENT",
    "BASE_URL",
    "PER_PAGE",
    "REQUEST_TIMEOUT",
    "MAX_RETRIES",
    "BACKOFF_BASE_SEC",
    "RATE_LIMIT_MIN_WAIT_SEC",
    "MAX_RATE_LIMIT_WAITS",
    "DATA_DIR",
    "INITIAL_SINCE",
    "RELATIONSHIP_FILE",
    "REPOSITORY_FILE",
    "USER_FILE",
    "ERROR_LOG_FILE",
    "DISCOVERED_USERS_FILE",
    "CHECKPOINT_FILE",
    "MinerSettings",
    "build_arg_parser",
    "parse_args",
    "resolve_settings",
]
