"""Tests for lookr settings show/set."""

from __future__ import annotations

from pathlib import Path

import yaml
from typer.testing import CliRunner

from lookr.cli.main import app

runner = CliRunner()


def test_show_defaults(lookr_home: Path) -> None:
    result = runner.invoke(app, ["settings", "show"])
    assert result.exit_code == 0
    assert "ai.max_tokens" in result.output
    assert "220" in result.output
    assert "not configured" in result.output


def test_set_clamps_and_writes_yaml(lookr_home: Path) -> None:
    result = runner.invoke(app, ["settings", "set", "--temperature", "9", "--max-tokens", "10"])
    assert result.exit_code == 0
    assert "Settings saved." in result.output
    assert "temperature=1.5" in result.output
    assert "max_tokens=64" in result.output

    data = yaml.safe_load((lookr_home / "settings.yaml").read_text(encoding="utf-8"))
    assert data["ai"]["temperature"] == 1.5
    assert data["ai"]["max_tokens"] == 64


def test_set_nothing(lookr_home: Path) -> None:
    result = runner.invoke(app, ["settings", "set"])
    assert result.exit_code == 0
    assert "Nothing to change" in result.output
    assert not (lookr_home / "settings.yaml").exists()


def test_show_ready_when_files_exist(lookr_home: Path, tmp_path: Path) -> None:
    exe = tmp_path / "llama-cli"
    model = tmp_path / "m.gguf"
    exe.write_text("", encoding="utf-8")
    model.write_bytes(b"GGUF")
    runner.invoke(app, ["settings", "set", "--executable", str(exe), "--model", str(model)])

    result = runner.invoke(app, ["settings", "show"])
    assert "ready" in result.output


def test_invalid_settings_file_warns_and_uses_defaults(lookr_home: Path) -> None:
    lookr_home.mkdir(parents=True)
    (lookr_home / "settings.yaml").write_text("ai: [not, a, mapping]\n", encoding="utf-8")
    result = runner.invoke(app, ["settings", "show"])
    assert result.exit_code == 0
    assert "Warning:" in result.output
    assert "220" in result.output


def test_set_rejects_nan_temperature(lookr_home: Path) -> None:
    result = runner.invoke(app, ["settings", "set", "--temperature", "nan"])
    assert result.exit_code == 2
    assert not (lookr_home / "settings.yaml").exists()


def test_show_prints_paths_with_brackets_verbatim(lookr_home: Path) -> None:
    runner.invoke(app, ["settings", "set", "--model", "/models/[beta]/m.gguf"])
    result = runner.invoke(app, ["settings", "show"])
    assert result.exit_code == 0
    assert "/models/[beta]/m.gguf" in result.output
