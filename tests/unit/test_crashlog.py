"""Tests for the fatal crash log."""

from __future__ import annotations

from pathlib import Path

from lookr.crashlog import write_fatal_log


def _raise_and_catch() -> ValueError:
    try:
        raise ValueError("vault exploded")
    except ValueError as exc:
        return exc


def test_writes_report_with_traceback(tmp_path: Path) -> None:
    path = write_fatal_log(_raise_and_catch(), tmp_path / "logs")

    assert path is not None
    assert path.parent == tmp_path / "logs"
    assert path.name.startswith("fatal-") and path.suffix == ".log"

    text = path.read_text(encoding="utf-8")
    assert "TimestampUtc:" in text
    assert "Python:" in text
    assert "Exception: ValueError: vault exploded" in text
    assert "_raise_and_catch" in text


def test_unwritable_directory_returns_none(tmp_path: Path) -> None:
    blocker = tmp_path / "logs"
    blocker.write_text("not a directory", encoding="utf-8")
    assert write_fatal_log(RuntimeError("x"), blocker) is None
