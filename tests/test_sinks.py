"""Tests for src.miner.sinks covering record formats, append semantics, and file checks.

Run with:
    pytest tests/test_sinks.py --maxfail=1 -v --cov=src.miner.sinks --cov-report=term-missing
"""

import os

import pytest

from src.miner import sinks
from src.miner.errors import ConfigurationError


def test_strip_line_breaks():
    assert sinks.strip_line_breaks("Ghent\r\nBelgium\rEU\n") == "GhentBelgiumEU"
    assert sinks.strip_line_breaks(None) is None


def test_format_relationship():
    assert sinks.format_relationship(5, [1, 2, 3]) == "5: 1 2 3"
    assert sinks.format_relationship(9, []) == "9:"


def test_format_repository_sanitizes_description_and_renders_null():
    repo = {
        "full_name": "mojombo/grit",
        "created_at": "2007-10-29T14:37:16Z",
        "description": "**Grit is no longer maintained.\r\nCheck out libgit2/rugged.",
        "language": None,
        "stargazers_count": 1900,
        "watchers_count": 1900,
        "forks_count": 530,
    }
    assert sinks.format_repository(1, repo) == (
        '1: "mojombo/grit", "2007-10-29T14:37:16Z", '
        '"**Grit is no longer maintained.Check out libgit2/rugged.", "null", 1900, 1900, 530'
    )


def test_format_user_and_discovered():
    user = {"id": 2, "login": "defunkt", "location": "San\nFrancisco", "followers": 21000, "following": 210}
    assert sinks.format_user(user) == '2: "defunkt", "SanFrancisco", 21000, 210'
    assert sinks.format_discovered(2, "defunkt") == "2,defunkt"


def test_sink_appends_whole_lines(tmp_path):
    sink = sinks.Sink(tmp_path / "Dataset1.txt")
    sink.append("1: 2")
    sink.append("3: 4 5")
    assert (tmp_path / "Dataset1.txt").read_text(encoding="utf-8") == "1: 2\n3: 4 5\n"


def test_sink_refuses_multiline_records(tmp_path):
    sink = sinks.Sink(tmp_path / "Dataset3.txt")
    with pytest.raises(ValueError):
        sink.append("1: broken\nrecord")
    assert not (tmp_path / "Dataset3.txt").exists()


def test_error_log_tags_lines_with_cursor(tmp_path, capsys):
    log = sinks.ErrorLog(tmp_path / "ErrorLog.txt")
    log.log(41, "HTTP 500: Server Error")
    log.log_detail(42, "boom: PROGRAM TERMINATED.", "Traceback:\n  line 1\n")
    lines = (tmp_path / "ErrorLog.txt").read_text(encoding="utf-8").splitlines()
    assert lines[0] == "41: HTTP 500: Server Error"
    assert lines[1] == "42: boom: PROGRAM TERMINATED."
    assert all(line.startswith("42:") for line in lines[2:])
    assert len(lines) == 4
    assert "41: HTTP 500" in capsys.readouterr().out


def test_ensure_data_files_creates_missing(tmp_path, capsys):
    existing = tmp_path / "Dataset1.txt"
    existing.write_text("")
    missing = tmp_path / "data" / "Dataset2.txt"
    sinks.ensure_data_files([existing, missing])
    assert missing.exists()
    out = capsys.readouterr().out
    assert "Dataset1.txt: File check OKAY" in out
    assert "Dataset2.txt: File NOT FOUND" in out


@pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0, reason="root ignores file modes")
def test_ensure_data_files_rejects_read_only(tmp_path):
    locked = tmp_path / "Dataset1.txt"
    locked.write_text("")
    locked.chmod(0o400)
    try:
        with pytest.raises(ConfigurationError):
            sinks.ensure_data_files([locked])
    finally:
        locked.chmod(0o600)
