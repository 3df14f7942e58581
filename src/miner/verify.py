"""Line-by-line comparison of two output runs, used to check a resumed crawl by hand."""

from __future__ import annotations

import argparse
from itertools import zip_longest
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .config import (
    DATA_DIR,
    DISCOVERED_USERS_FILE,
    ERROR_LOG_FILE,
    RELATIONSHIP_FILE,
    REPOSITORY_FILE,
    USER_FILE,
)
from .sinks import ensure_dir

RULE = "=" * 110
DATA_FILES = [RELATIONSHIP_FILE, REPOSITORY_FILE, USER_FILE, DISCOVERED_USERS_FILE, ERROR_LOG_FILE]


def line_compare(file1: Path, file2: Path) -> Tuple[int, int]:
    """Compare two files line by line; return (lines compared, lines matching).

    Only the common prefix is compared; a longer file's tail is reported but
    not counted.
    """
    file1, file2 = Path(file1), Path(file2)
    line_number = matches = 0
    print(f"Starting comparison of lines between {file1.name} and {file2.name}")
    with file1.open("r", encoding="utf-8") as fh1, file2.open("r", encoding="utf-8") as fh2:
        for line1, line2 in zip_longest(fh1, fh2):
            if line1 is None or line2 is None:
                longer = file2.name if line1 is None else file1.name
                print(f"{longer} has extra lines after line {line_number}")
                break
            line_number += 1
            if line1.rstrip("\r\n") == line2.rstrip("\r\n"):
                matches += 1
            else:
                print(f"Line  {line_number}\tdoes not match {'*' * 54}")
    print(f"{line_number} lines compared, {matches} lines match")
    print(f"\n{RULE}\n")
    return line_number, matches


def run_paths(root: Path, prefix: str) -> List[Path]:
    return [root / prefix / name for name in DATA_FILES]


def verify_files(work: Sequence[Path], test: Sequence[Path]) -> List[Tuple[int, int]]:
    """Pairwise-compare the working run against the test run."""
    return [line_compare(w, t) for w, t in zip(work, test)]


def clear_files(paths: Sequence[Path]) -> None:
    """Truncate every file in `paths`, creating the ones that do not exist."""
    for path in paths:
        path = Path(path)
        ensure_dir(path.parent)
        path.write_text("", encoding="utf-8")
        print(f"{path.name} cleared.")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare (or reset) a working and a test run of the miner output.",
    )
    parser.add_argument("action", choices=["verify", "clear"])
    parser.add_argument("--root", default=DATA_DIR)
    parser.add_argument("--work", default="working")
    parser.add_argument("--test", default="test")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    root = Path(args.root)
    work = run_paths(root, args.work)
    test = run_paths(root, args.test)
    if args.action == "verify":
        results = verify_files(work, test)
        return 0 if all(compared == matched for compared, matched in results) else 1
    clear_files(work + test)
    return 0


__all__ = ["line_compare", "run_paths", "verify_files", "clear_files", "build_arg_parser", "main"]
