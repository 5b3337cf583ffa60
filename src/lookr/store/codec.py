"""Snippet record codec: snippet list <-> encrypted JSON blob.

Plaintext layout (pretty-printed JSON array)::

    [
      {
        "id": "9f1c...",
        "title": "Welcome",
        "content": "...",
        "category": "General",
        "keywords": "intro,getting-started",
        "tags": null,
        "lastUsedUtc": "2026-01-02T03:04:05.000000Z"
      }
    ]

``tags`` is the legacy name of ``keywords``; it is read but never written.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any

from lookr.models import Snippet, ensure_utc
from lookr.store.crypto import Cipher

VAULT_ENTROPY = b"LookrQuickText.LocalVault.v1"

_FRACTION_RE = re.compile(r"(\.\d+)")


class MalformedSnippetData(ValueError):
    """Raised when decrypted vault content is not a list of snippet records."""


def snippet_to_record(snippet: Snippet) -> dict[str, Any]:
    return {
        "id": snippet.id,
        "title": snippet.title,
        "content": snippet.content,
        "category": snippet.category,
        "keywords": snippet.keywords,
        "tags": None,
        "lastUsedUtc": _format_timestamp(snippet.last_used_utc),
    }


def record_to_snippet(record: Any) -> Snippet:
    """Build a normalized Snippet from one decoded record.

    Blank id/title/category fall back to defaults; a blank ``keywords`` is
    filled from the legacy ``tags`` field.
    """
    if not isinstance(record, dict):
        raise MalformedSnippetData(f"Snippet record must be an object, got {type(record).__name__}.")

    keywords = _text(record.get("keywords"))
    if not keywords.strip():
        keywords = _text(record.get("tags"))

    return Snippet(
        id=_text(record.get("id")),
        title=_text(record.get("title")),
        content=_text(record.get("content")),
        category=_text(record.get("category")),
        keywords=keywords,
        last_used_utc=_parse_timestamp(record.get("lastUsedUtc")),
    )


class SnippetCodec:
    """Serialize snippets to an encrypted blob and back.

    Args:
        cipher: Encryption capability (see :class:`lookr.store.crypto.Cipher`).
        entropy: Versioned context passed to the cipher.
    """

    def __init__(self, cipher: Cipher, entropy: bytes = VAULT_ENTROPY) -> None:
        self.cipher = cipher
        self.entropy = entropy

    def encode(self, snippets: list[Snippet]) -> bytes:
        records = [snippet_to_record(s) for s in snippets]
        plaintext = json.dumps(records, indent=2, ensure_ascii=False).encode("utf-8")
        return self.cipher.encrypt(plaintext, self.entropy)

    def decode(self, blob: bytes) -> list[Snippet]:
        """Decrypt and parse *blob*.

        Raises:
            DecryptionError: If the blob cannot be decrypted for this user.
            MalformedSnippetData: If the plaintext is not a JSON record array.
        """
        plaintext = self.cipher.decrypt(blob, self.entropy)
        try:
            records = json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MalformedSnippetData(f"Snippet data is not valid JSON: {exc}") from exc

        if records is None:
            return []
        if not isinstance(records, list):
            raise MalformedSnippetData("Snippet data must be a JSON array.")
        return [record_to_snippet(r) for r in records]


# ------------------------------------------------------------------
# Field helpers
# ------------------------------------------------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _format_timestamp(value: datetime) -> str:
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # Fractions of any precision are padded or cut to microseconds.
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[1:7].ljust(6, "0"), text, count=1)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
