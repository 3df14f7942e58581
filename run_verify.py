"""Convenience shim to compare or reset working/test output runs."""

from __future__ import annotations

import sys

from src.miner.verify import main as verify_main


if __name__ == "__main__":
    sys.exit(verify_main(sys.argv[1:]))
