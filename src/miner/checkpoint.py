"""Durable `since` cursor: the last repository id the crawl has fully accounted for."""

from __future__ import annotations

import json
import os
from pathlib import Path

from .errors import ConfigurationError


class Checkpoint:
    """A monotonically non-decreasing repository id persisted as `{"since": N}`."""

    def __init__(self, path: Path, since: int) -> None:
        self.path = Path(path)
        self.since = int(since)

    @classmethod
    def load(cls, path: Path, default: int = 0) -> "Checkpoint":
        """Read the saved cursor, or start from `default` when nothing was saved yet."""
        path = Path(path)
        if not path.exists():
            return cls(path, default)
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"unable to read checkpoint {path}: {exc}") from exc
        since = data.get("since") if isinstance(data, dict) else None
        if not isinstance(since, int):
            raise ConfigurationError(f"checkpoint {path} has no integer 'since' value")
        return cls(path, since)

    def advance(self, item_id: int) -> None:
        """Move the cursor to `item_id`; moving backwards is a programming error."""
        if item_id < self.since:
            raise ValueError(f"cursor cannot move backwards: {self.since} -> {item_id}")
        self.since = int(item_id)

    def save(self) -> None:
        """Atomically replace the checkpoint file with the current cursor."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump({"since": self.since}, fh)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise ConfigurationError(f"Error Saving checkpoint {self.path}: {exc}") from exc

    def advance_and_save(self, item_id: int) -> None:
        self.advance(item_id)
        self.save()

    def __repr__(self) -> str:
        return f"Checkpoint(path={str(self.path)!r}, since={self.since})"


__all__ = ["Checkpoint"]
