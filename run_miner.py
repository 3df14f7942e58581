"""Convenience shim to run the repository miner."""

from __future__ import annotations

import sys

from src.miner.runner import main as miner_main


if __name__ == "__main__":
    sys.exit(miner_main(sys.argv[1:]))
