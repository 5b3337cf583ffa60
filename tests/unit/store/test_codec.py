"""Tests for the snippet record codec."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from lookr.models import Snippet
from lookr.store.codec import (
    VAULT_ENTROPY,
    MalformedSnippetData,
    SnippetCodec,
    record_to_snippet,
    snippet_to_record,
)


class PlainCipher:
    """Identity cipher so tests can inspect and forge plaintext."""

    def encrypt(self, data: bytes, context: bytes) -> bytes:
        assert context == VAULT_ENTROPY
        return data

    def decrypt(self, blob: bytes, context: bytes) -> bytes:
        assert context == VAULT_ENTROPY
        return blob


@pytest.fixture
def codec() -> SnippetCodec:
    return SnippetCodec(PlainCipher())


# ---------------------------------------------------------------------------
# Record mapping
# ---------------------------------------------------------------------------


def test_record_uses_camel_case_keys() -> None:
    snippet = Snippet(
        id="abc",
        title="Hi",
        content="Hello",
        category="Email",
        keywords="greet",
        last_used_utc=datetime(2026, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc),
    )
    record = snippet_to_record(snippet)
    assert record == {
        "id": "abc",
        "title": "Hi",
        "content": "Hello",
        "category": "Email",
        "keywords": "greet",
        "tags": None,
        "lastUsedUtc": "2026-01-02T03:04:05.123456Z",
    }


def test_blank_fields_get_defaults() -> None:
    snippet = record_to_snippet({"id": " ", "title": "", "category": None, "content": "x"})
    assert snippet.id  # regenerated
    assert snippet.title == "New Snippet"
    assert snippet.category == "General"


def test_legacy_tags_fill_blank_keywords() -> None:
    snippet = record_to_snippet({"title": "t", "keywords": "", "tags": "old,tags"})
    assert snippet.keywords == "old,tags"


def test_keywords_win_over_legacy_tags() -> None:
    snippet = record_to_snippet({"title": "t", "keywords": "new", "tags": "old"})
    assert snippet.keywords == "new"


def test_seven_digit_fraction_is_accepted() -> None:
    snippet = record_to_snippet({"title": "t", "lastUsedUtc": "2025-06-01T10:00:00.1234567Z"})
    assert snippet.last_used_utc == datetime(2025, 6, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)


def test_missing_or_bad_timestamp_becomes_now() -> None:
    before = datetime.now(timezone.utc)
    snippet = record_to_snippet({"title": "t", "lastUsedUtc": "yesterday"})
    assert snippet.last_used_utc >= before


def test_year_one_timestamp_becomes_now() -> None:
    before = datetime.now(timezone.utc)
    snippet = record_to_snippet({"title": "t", "lastUsedUtc": "0001-01-01T00:00:00Z"})
    assert snippet.last_used_utc >= before


def test_non_object_record_is_malformed() -> None:
    with pytest.raises(MalformedSnippetData):
        record_to_snippet(["not", "a", "dict"])


# ---------------------------------------------------------------------------
# Blob encode / decode
# ---------------------------------------------------------------------------


def test_encode_is_pretty_printed_json(codec) -> None:
    blob = codec.encode([Snippet(title="Grüße", content="Hallo")])
    text = blob.decode("utf-8")
    assert text.startswith("[\n  {")
    assert "Grüße" in text  # not \u-escaped


def test_decode_null_is_empty(codec) -> None:
    assert codec.decode(b"null") == []


def test_decode_object_is_malformed(codec) -> None:
    with pytest.raises(MalformedSnippetData, match="array"):
        codec.decode(json.dumps({"title": "x"}).encode())


def test_decode_invalid_json_is_malformed(codec) -> None:
    with pytest.raises(MalformedSnippetData, match="JSON"):
        codec.decode(b"[{")
