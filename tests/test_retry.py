"""Unit tests for src.miner.retry covering classification and quadratic backoff.

Run with:
    pytest tests/test_retry.py --maxfail=1 -v --cov=src.miner.retry --cov-report=term-missing
"""

import pytest

from src.miner import retry
from src.miner.errors import (
    BackoffInterrupted,
    IterationError,
    RemoteError,
    RetriesExceeded,
    TerminalRemoteError,
    TransientRemoteError,
)


def _flaky(errors, result="ok"):
    calls = {"n": 0}

    def action():
        calls["n"] += 1
        if errors:
            raise errors.pop(0)
        return result

    return action, calls


def test_backoff_delay_grows_quadratically():
    delays = [retry.backoff_delay(k, 2) for k in range(1, 5)]
    assert delays == [2, 8, 18, 32]
    assert all(a < b for a, b in zip(delays, delays[1:]))


def test_success_after_transient_failures_sleeps_base_times_attempt_squared():
    slept = []
    action, calls = _flaky([TransientRemoteError(500, "Server Error")] * 2)
    result = retry.with_retry(3, action, base_wait=1.5, sleep=slept.append)
    assert result == "ok"
    assert calls["n"] == 3
    assert slept == [1.5, 6.0]


def test_retries_exceeded_wraps_last_error():
    slept = []
    last = TransientRemoteError(-1, "Read timed out")
    action, calls = _flaky([TransientRemoteError(502, "Bad Gateway")] * 2 + [last])
    with pytest.raises(RetriesExceeded) as excinfo:
        retry.with_retry(2, action, sleep=slept.append)
    assert excinfo.value.last_error is last
    assert excinfo.value.__cause__ is last
    assert calls["n"] == 3
    assert slept == [1, 4]


def test_skip_returns_none_without_sleeping():
    slept = []
    action, calls = _flaky([TerminalRemoteError(451, "Repository access blocked")])
    result = retry.with_retry(3, action, lambda exc: retry.Outcome.SKIP, sleep=slept.append)
    assert result is None
    assert calls["n"] == 1
    assert slept == []


def test_fatal_reraises_original_error():
    boom = KeyError("full_name")
    action, calls = _flaky([boom])
    with pytest.raises(KeyError):
        retry.with_retry(3, action, sleep=lambda s: None)
    assert calls["n"] == 1


def test_zero_attempt_budget_fails_on_first_retry_decision():
    action, calls = _flaky([TransientRemoteError(500, "x")])
    with pytest.raises(RetriesExceeded):
        retry.with_retry(0, action, sleep=lambda s: None)
    assert calls["n"] == 1


def test_interrupted_backoff_becomes_backoff_interrupted():
    def interrupted_sleep(_):
        raise KeyboardInterrupt

    action, _ = _flaky([TransientRemoteError(500, "x")])
    with pytest.raises(BackoffInterrupted):
        retry.with_retry(3, action, sleep=interrupted_sleep)


def test_retry_remote_classification():
    assert retry.retry_remote(TransientRemoteError(500, "x")) is retry.Outcome.RETRY
    assert retry.retry_remote(TerminalRemoteError(404, "Not Found")) is retry.Outcome.RETRY
    assert retry.retry_remote(IterationError(TransientRemoteError(-1, "timeout"))) is retry.Outcome.RETRY
    assert retry.retry_remote(RemoteError(401, "Bad credentials")) is retry.Outcome.FATAL
    assert retry.retry_remote(ValueError("nope")) is retry.Outcome.FATAL


def test_retry_progress_is_printed(capsys):
    action, _ = _flaky([TransientRemoteError(500, "Server Error")])
    retry.with_retry(3, action, sleep=lambda s: None)
    out = capsys.readouterr().out
    assert "[retry 1/3]" in out and "sleep 1.0s" in out
