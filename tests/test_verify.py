"""Tests for src.miner.verify covering line comparison and clearing output runs.

Run with:
    pytest tests/test_verify.py --maxfail=1 -v --cov=src.miner.verify --cov-report=term-missing
"""

from src.miner import verify


def test_line_compare_counts_matches(tmp_path, capsys):
    a = tmp_path / "a.txt"
    b = tmp_path / "b.txt"
    a.write_text("1: 2\n3: 4\n5: 6\n", encoding="utf-8")
    b.write_text("1: 2\n3: 9\n5: 6\n", encoding="utf-8")
    assert verify.line_compare(a, b) == (3, 2)
    out = capsys.readouterr().out
    assert "Line  2\tdoes not match" in out
    assert "3 lines compared, 2 lines match" in out


def test_line_compare_stops_at_shorter_file(tmp_path, capsys):
    a = tmp_path / "a.txt"
    b = tmp_path / "b.txt"
    a.write_text("x\ny\n", encoding="utf-8")
    b.write_text("x\n", encoding="utf-8")
    assert verify.line_compare(a, b) == (1, 1)
    assert "a.txt has extra lines after line 1" in capsys.readouterr().out


def test_clear_then_verify_via_main(tmp_path):
    assert verify.main(["clear", "--root", str(tmp_path)]) == 0
    work = verify.run_paths(tmp_path, "working")
    test = verify.run_paths(tmp_path, "test")
    assert all(p.exists() and p.read_text() == "" for p in work + test)

    work[0].write_text("5: 101\n", encoding="utf-8")
    test[0].write_text("5: 101\n", encoding="utf-8")
    assert verify.main(["verify", "--root", str(tmp_path)]) == 0

    test[0].write_text("5: 102\n", encoding="utf-8")
    assert verify.main(["verify", "--root", str(tmp_path)]) == 1
