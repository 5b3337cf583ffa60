"""Tests for lookr generate with a faked local AI backend."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from lookr.ai.llama_cpp import AiGenerationError, LlamaCppGenerator
from lookr.cli.main import app
from lookr.models import Snippet
from lookr.store.secure_store import SecureSnippetStore

runner = CliRunner()


@pytest.fixture
def configured(lookr_home: Path, tmp_path: Path) -> Path:
    exe = tmp_path / "llama-cli"
    model = tmp_path / "model.gguf"
    exe.write_text("", encoding="utf-8")
    model.write_bytes(b"GGUF")
    result = runner.invoke(app, ["settings", "set", "--executable", str(exe), "--model", str(model)])
    assert result.exit_code == 0
    return lookr_home


@pytest.fixture
def fake_ai(monkeypatch):
    requests = []

    async def fake_generate(self, settings, request, cancel=None):
        requests.append(request)
        return "  Friendly reminder: the invoice is due.  "

    monkeypatch.setattr(LlamaCppGenerator, "generate", fake_generate)
    return requests


def _stored(home: Path) -> list[Snippet]:
    return SecureSnippetStore.in_directory(home).load()


def test_generate_not_configured(lookr_home: Path) -> None:
    result = runner.invoke(app, ["generate", "-p", "hello"])
    assert result.exit_code == 1
    assert "not configured" in result.output
    assert "lookr settings set" in result.output


def test_generate_prints_output(configured: Path, fake_ai) -> None:
    result = runner.invoke(app, ["generate", "-p", "Invoice reminder"])
    assert result.exit_code == 0
    assert "Friendly reminder: the invoice is due." in result.output
    assert fake_ai[0].prompt == "Invoice reminder"
    assert fake_ai[0].existing_text == ""


def test_generate_for_passes_context_and_applies(configured: Path, fake_ai) -> None:
    runner.invoke(app, ["add", "-t", "Invoice", "--content", "Pay now.", "-c", "Billing"])

    result = runner.invoke(app, ["generate", "-p", "Softer", "--for", "Invoice", "--apply"])

    assert result.exit_code == 0
    assert "Applied AI output" in result.output
    request = fake_ai[0]
    assert (request.category, request.existing_text) == ("Billing", "Pay now.")
    invoice = next(s for s in _stored(configured) if s.title == "Invoice")
    assert invoice.content == "Friendly reminder: the invoice is due."


def test_generate_new_snippet(configured: Path, fake_ai) -> None:
    result = runner.invoke(app, ["generate", "-p", "Reminder", "--new"])
    assert result.exit_code == 0
    created = next(s for s in _stored(configured) if s.title == "Reminder")
    assert created.category == "General"


def test_generate_apply_needs_for(configured: Path) -> None:
    result = runner.invoke(app, ["generate", "-p", "x", "--apply"])
    assert result.exit_code == 1
    assert "--apply needs a quicktext" in result.output


def test_generate_apply_and_new_conflict(lookr_home: Path) -> None:
    result = runner.invoke(app, ["generate", "-p", "x", "--for", "a", "--apply", "--new"])
    assert result.exit_code == 1
    assert "not both" in result.output


def test_generate_failure(configured: Path, monkeypatch) -> None:
    async def fail(self, settings, request, cancel=None):
        raise AiGenerationError("failed to load model")

    monkeypatch.setattr(LlamaCppGenerator, "generate", fail)
    result = runner.invoke(app, ["generate", "-p", "x"])
    assert result.exit_code == 1
    assert "failed to load model" in result.output
