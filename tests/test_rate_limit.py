"""Tests for src.miner.rate_limit covering wait computation and the blocking pause.

Run with:
    pytest tests/test_rate_limit.py --maxfail=1 -v --cov=src.miner.rate_limit --cov-report=term-missing
"""

import pytest

from src.miner import rate_limit
from src.miner.errors import BackoffInterrupted


def test_wait_is_time_until_reset():
    assert rate_limit.parse_wait_ms("1600", now_ms=1_000_000) == 600_000


def test_wait_never_drops_below_floor():
    assert rate_limit.parse_wait_ms("1001", now_ms=1_000_000) == 10_000
    assert rate_limit.parse_wait_ms("900", now_ms=1_000_000) == 10_000


def test_missing_or_garbled_reset_uses_floor():
    assert rate_limit.parse_wait_ms(None, now_ms=5) == 10_000
    assert rate_limit.parse_wait_ms("soon", now_ms=5) == 10_000


def test_retry_after_takes_precedence():
    assert rate_limit.parse_wait_ms("99999", now_ms=0, retry_after="30") == 30_000
    assert rate_limit.parse_wait_ms(None, now_ms=0, retry_after="2") == 10_000


def test_describe_wait_minutes_or_seconds():
    assert rate_limit.describe_wait(59_999) == "59 seconds"
    assert rate_limit.describe_wait(60_000) == "1 minutes"
    assert rate_limit.describe_wait(3_540_000) == "59 minutes"


def test_is_quota_exhausted():
    assert rate_limit.is_quota_exhausted(403, {"X-RateLimit-Remaining": "0"})
    assert rate_limit.is_quota_exhausted(429, {})
    assert rate_limit.is_quota_exhausted(403, {"Retry-After": "60"})
    assert not rate_limit.is_quota_exhausted(403, {"X-RateLimit-Remaining": "4000"})
    assert not rate_limit.is_quota_exhausted(404, {"X-RateLimit-Remaining": "0"})


def test_secondary_limit_message_counts_as_exhausted():
    headers = {"X-RateLimit-Remaining": "4000"}
    msg = "You have exceeded a secondary rate limit. Please wait a few minutes before you try again."
    assert rate_limit.is_quota_exhausted(403, headers, msg)
    assert rate_limit.is_quota_exhausted(403, headers, "You have triggered an abuse detection mechanism.")
    assert not rate_limit.is_quota_exhausted(403, headers, "Resource not accessible by integration")
    assert not rate_limit.is_quota_exhausted(404, headers, msg)


def test_secondary_limit_wait_ignores_primary_reset():
    slept = []
    limiter = rate_limit.RateLimiter(sleep=slept.append, clock=lambda: 1000.0)
    waited = limiter.wait_for_reset({"X-RateLimit-Remaining": "4000", "X-RateLimit-Reset": "4600"})
    assert waited == rate_limit.MIN_WAIT_MS
    assert slept == [10.0]


def test_wait_for_reset_blocks_for_computed_duration(capsys):
    slept = []
    limiter = rate_limit.RateLimiter(sleep=slept.append, clock=lambda: 1000.0)
    waited = limiter.wait_for_reset({"X-RateLimit-Reset": "1120"})
    assert waited == 120_000
    assert slept == [120.0]
    assert limiter.waits == 1
    assert "pausing for... 2 minutes" in capsys.readouterr().out


def test_wait_for_reset_reports_seconds_under_a_minute(capsys):
    limiter = rate_limit.RateLimiter(sleep=lambda s: None, clock=lambda: 1000.0)
    limiter.wait_for_reset({})
    assert "pausing for... 10 seconds" in capsys.readouterr().out


def test_interrupted_wait_raises_backoff_interrupted():
    def interrupted(_):
        raise KeyboardInterrupt

    limiter = rate_limit.RateLimiter(sleep=interrupted, clock=lambda: 0.0)
    with pytest.raises(BackoffInterrupted):
        limiter.wait_for_reset({})
    assert limiter.waits == 0
