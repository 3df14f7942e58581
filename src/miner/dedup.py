"""Insert-once user registry backed by the append-only DiscoveredUsersSet file."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Generic, Hashable, Iterator, Optional, Tuple, TypeVar

from .errors import ConfigurationError

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class DedupSet(Generic[K, V]):
    """A mapping whose `put` never overrides: it behaves like a set over its keys.

    Keys are immutable ids; values are display attributes (a login) and may
    be stale. Once a key is present, later puts for it are refused, so the
    first login seen for an id is the one kept.
    """

    def __init__(self) -> None:
        self._items: Dict[K, V] = {}

    def put(self, key: Optional[K], value: Optional[V]) -> bool:
        """Insert `key -> value` iff the key is new and neither side is None."""
        if key is None or value is None:
            return False
        if key in self._items:
            return False
        self._items[key] = value
        return True

    def get(self, key: K) -> Optional[V]:
        return self._items.get(key)

    def remove(self, key: K) -> Optional[V]:
        return self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def size(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[K]:
        return iter(self._items)


def parse_discovered_line(line: str, line_no: int) -> Tuple[int, str]:
    """Split an `<id>,<login>` record; raises ConfigurationError on a malformed line."""
    raw_id, sep, login = line.partition(",")
    if not sep or not login:
        raise ConfigurationError(f"malformed discovered-user record on line {line_no}: {line!r}")
    try:
        return int(raw_id), login
    except ValueError as exc:
        raise ConfigurationError(f"bad user id on line {line_no}: {raw_id!r}") from exc


def load_discovered_users(path: Path) -> DedupSet[int, str]:
    """Read every `<id>,<login>` line of `path` into a fresh DedupSet.

    A repeated id means the store was appended twice for one user, which
    should never happen, so it is reported as a corrupt data file.
    """
    users: DedupSet[int, str] = DedupSet()
    if not path.exists():
        print("Loaded 0 Users into Discovered Set...")
        return users

    with path.open("r", encoding="utf-8") as handle:
        for line_no, raw in enumerate(handle, start=1):
            line = raw.rstrip("\r\n")
            if not line:
                continue
            user_id, login = parse_discovered_line(line, line_no)
            if not users.put(user_id, login):
                raise ConfigurationError(f"user {user_id} appears twice in {path} (line {line_no})")
    print(f"Loaded {users.size()} Users into Discovered Set...")
    return users


__all__ = ["DedupSet", "parse_discovered_line", "load_discovered_users"]
