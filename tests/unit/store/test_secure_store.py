"""Tests for SecureSnippetStore: round trip, load failures, atomic saves."""

from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

from lookr.models import Snippet
from lookr.store.crypto import UserScopedCipher
from lookr.store.secure_store import SecureSnippetStore


def _sample() -> list[Snippet]:
    return [
        Snippet(
            id="a1",
            title="Follow up",
            content="Just following up on my last email.",
            category="Email",
            keywords="follow,reply",
            last_used_utc=datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc),
        ),
        Snippet(id="", title="", content="No title", category=""),
    ]


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


def test_missing_file_loads_empty_without_error(store) -> None:
    assert store.load() == []
    assert store.last_load_error is None


def test_empty_file_loads_empty(store) -> None:
    store.storage_path.write_bytes(b"")
    assert store.load() == []
    assert store.last_load_error is None


def test_save_then_load_roundtrip(store) -> None:
    original = _sample()
    store.save(original)
    loaded = store.load()

    assert [s.id for s in loaded] == [s.id for s in original]
    assert loaded[0].title == "Follow up"
    assert loaded[0].keywords == "follow,reply"
    assert loaded[0].last_used_utc == datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
    assert loaded[1].title == "New Snippet"
    assert loaded[1].category == "General"
    assert store.last_load_error is None


def test_file_is_encrypted_on_disk(store) -> None:
    store.save(_sample())
    raw = store.storage_path.read_bytes()
    assert b"Follow up" not in raw


def test_in_directory_uses_default_names(tmp_path) -> None:
    s = SecureSnippetStore.in_directory(tmp_path / "app")
    assert s.storage_path.name == "snippets.bin"
    assert (tmp_path / "app").is_dir()


# ---------------------------------------------------------------------------
# Load failures degrade to empty + message
# ---------------------------------------------------------------------------


def test_other_user_gets_empty_library_and_message(tmp_path, store) -> None:
    store.save(_sample())
    other = SecureSnippetStore(
        store.storage_path,
        UserScopedCipher(tmp_path / "vault.key", identity="someone|2|/home/someone"),
    )
    assert other.load() == []
    assert "could not be decrypted" in other.last_load_error


def test_garbage_file_gets_empty_library_and_message(store) -> None:
    store.storage_path.write_bytes(b"\x00\x01garbage")
    assert store.load() == []
    assert store.last_load_error


def test_malformed_plaintext_reports_malformed(store, cipher) -> None:
    store.storage_path.write_bytes(cipher.encrypt(b'{"not": "a list"}', b"LookrQuickText.LocalVault.v1"))
    assert store.load() == []
    assert "malformed" in store.last_load_error.lower()


def test_damaged_key_reports_unusable_key(tmp_path, store) -> None:
    store.save(_sample())
    (tmp_path / "vault.key").write_bytes(b"tiny")
    fresh = SecureSnippetStore(
        store.storage_path, UserScopedCipher(tmp_path / "vault.key", identity="x")
    )
    assert fresh.load() == []
    assert "key" in fresh.last_load_error.lower()


def test_error_is_reset_on_next_successful_load(store) -> None:
    store.storage_path.write_bytes(b"garbage")
    store.load()
    assert store.last_load_error
    store.save(_sample())
    store.load()
    assert store.last_load_error is None


# ---------------------------------------------------------------------------
# Atomic save
# ---------------------------------------------------------------------------


def test_interrupted_save_keeps_previous_file(store, monkeypatch) -> None:
    store.save(_sample())
    before = store.storage_path.read_bytes()

    def boom(src, dst):
        raise OSError("disk unplugged")

    monkeypatch.setattr(os, "replace", boom)
    with pytest.raises(OSError):
        store.save([Snippet(title="Replacement")])
    monkeypatch.undo()

    assert store.storage_path.read_bytes() == before
    assert [s.title for s in store.load()] == ["Follow up", "New Snippet"]
    leftovers = [p for p in store.storage_path.parent.iterdir() if p.suffix == ".tmp"]
    assert leftovers == []
