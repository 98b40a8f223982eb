"""Tests for the command-line entry point."""

from __future__ import annotations

import main


def test_records_mood_and_prints_report(tmp_path, capsys):
    db_path = tmp_path / "cli.db"

    exit_code = main.main(
        ["user-1", "--db", str(db_path), "--add-mood", "good", "--energy", "7"]
    )

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Insights for user-1" in output
    assert "Your most common mood is good (1 times)" in output
    assert "Your average energy level is 7.0/10" in output


def test_export_writes_csv(tmp_path, capsys):
    db_path = tmp_path / "cli.db"
    csv_path = tmp_path / "export.csv"

    exit_code = main.main(
        ["user-1", "--db", str(db_path), "--add-mood", "bad", "--export", str(csv_path)]
    )

    assert exit_code == 0
    assert csv_path.read_text(encoding="utf-8").startswith("kind,id,created_at")


def test_invalid_mood_returns_error(tmp_path, capsys):
    exit_code = main.main(["user-1", "--db", str(tmp_path / "cli.db"), "--add-mood", "ecstatic"])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert "Invalid mood value" in captured.err
    assert captured.out == ""
