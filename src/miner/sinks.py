"""Append-only dataset files, their line formats, and the error log."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .errors import ConfigurationError

LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def ensure_dir(path: str | Path) -> None:
    """Create output directories as-needed without raising for existing folders."""
    os.makedirs(path, exist_ok=True)


def ensure_data_files(paths: Iterable[Path]) -> None:
    """Create missing data files and check that existing ones are readable and writable."""
    for path in paths:
        path = Path(path)
        if path.exists():
            if os.access(path, os.R_OK | os.W_OK):
                print(f"{path.name}: File check OKAY")
                continue
            raise ConfigurationError(f"{path.name}: Please check read/write permissions")
        print(f"{path.name}: File NOT FOUND... creating a new file... done!")
        try:
            ensure_dir(path.parent)
            path.touch()
        except OSError as exc:
            raise ConfigurationError(f"unable to create {path}: {exc}") from exc


def strip_line_breaks(text: Optional[str]) -> Optional[str]:
    """Remove embedded line terminators so free text cannot split a record."""
    if text is None:
        return None
    return LINE_BREAK_RE.sub("", text)


def _text(value: Any) -> str:
    return "null" if value is None else str(value)


def format_relationship(repo_id: int, user_ids: List[int]) -> str:
    """`<id>: <ownerId> <contributorId> ...`"""
    return f"{repo_id}:" + "".join(f" {uid}" for uid in user_ids)


def format_repository(repo_id: int, repo: Dict[str, Any]) -> str:
    """`<id>: "<fullName>", "<createdAt>", "<description>", "<language>", <stars>, <watchers>, <forks>`"""
    description = strip_line_breaks(repo.get("description"))
    return (
        f'{repo_id}: "{_text(repo.get("full_name"))}", "{_text(repo.get("created_at"))}", '
        f'"{_text(description)}", "{_text(repo.get("language"))}", '
        f'{_text(repo.get("stargazers_count"))}, {_text(repo.get("watchers_count"))}, '
        f'{_text(repo.get("forks_count"))}'
    )


def format_user(user: Dict[str, Any]) -> str:
    """`<id>: "<login>", "<location>", <followers>, <following>`"""
    location = strip_line_breaks(user.get("location"))
    return (
        f'{user.get("id")}: "{_text(user.get("login"))}", "{_text(location)}", '
        f'{_text(user.get("followers"))}, {_text(user.get("following"))}'
    )


def format_discovered(user_id: int, login: str) -> str:
    return f"{user_id},{login}"


class Sink:
    """One append-only UTF-8 file holding one category of record, one per line."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def append(self, record: str) -> None:
        """Write `record` plus a newline in a single call; records may not contain newlines."""
        if "\n" in record or "\r" in record:
            raise ValueError(f"record for {self.path.name} spans several lines: {record!r}")
        with self.path.open("a", encoding="utf-8", newline="\n") as fh:
            fh.write(record + "\n")

    def __repr__(self) -> str:
        return f"Sink({str(self.path)!r})"


class ErrorLog(Sink):
    """Diagnostic sink; every line is prefixed with the cursor active at the time."""

    def log(self, since: int, message: str) -> None:
        line = f"{since}: {strip_line_breaks(message)}"
        print(line)
        self.append(line)

    def log_detail(self, since: int, message: str, detail: str) -> None:
        """Log `message`, then the indented lines of `detail` (e.g. a traceback)."""
        self.log(since, message)
        for raw in detail.splitlines():
            if raw.strip():
                self.append(f"{since}:     {raw}")


__all__ = [
    "ensure_dir",
    "ensure_data_files",
    "strip_line_breaks",
    "format_relationship",
    "format_repository",
    "format_user",
    "format_discovered",
    "Sink",
    "ErrorLog",
]
