"""Resumable GitHub repository and user miner."""

from .engine import CrawlContext, CrawlEngine
from .runner import build_context, main, run_crawl

__all__ = ["CrawlContext", "CrawlEngine", "build_context", "main", "run_crawl"]
