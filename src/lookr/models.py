"""Domain models for the Lookr snippet library."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

DEFAULT_TITLE = "New Snippet"
DEFAULT_CATEGORY = "General"

TEMPERATURE_MIN = 0.1
TEMPERATURE_MAX = 1.5
MAX_TOKENS_MIN = 64
MAX_TOKENS_MAX = 1024
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 220


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_snippet_id() -> str:
    return uuid.uuid4().hex


def clamp_temperature(value: float) -> float:
    """Clamp to [0.1, 1.5]; NaN becomes the default."""
    value = float(value)
    if math.isnan(value):
        return DEFAULT_TEMPERATURE
    return min(max(value, TEMPERATURE_MIN), TEMPERATURE_MAX)


def clamp_max_tokens(value: int) -> int:
    """Clamp to [64, 1024]; NaN becomes the default."""
    if isinstance(value, float):
        if math.isnan(value):
            return DEFAULT_MAX_TOKENS
        value = min(max(value, MAX_TOKENS_MIN), MAX_TOKENS_MAX)
    return min(max(int(value), MAX_TOKENS_MIN), MAX_TOKENS_MAX)


def normalize_id(value: str | None) -> str:
    return value.strip() if value and value.strip() else new_snippet_id()


def normalize_title(value: str | None) -> str:
    return value.strip() if value and value.strip() else DEFAULT_TITLE


def normalize_category(value: str | None) -> str:
    return value.strip() if value and value.strip() else DEFAULT_CATEGORY


def ensure_utc(value: datetime | None) -> datetime:
    """Return *value* as an aware UTC datetime; missing or year-1 values become now."""
    if value is None or value.year <= 1:
        return utcnow()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(eq=False)
class Snippet:
    """A reusable text block.

    Identity is the object itself (``eq=False``): two snippets with equal
    fields are still distinct library entries. ``id`` is the stable key used
    on disk.
    """

    title: str = DEFAULT_TITLE
    content: str = ""
    category: str = DEFAULT_CATEGORY
    keywords: str = ""
    last_used_utc: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_snippet_id)

    def __post_init__(self) -> None:
        self.id = normalize_id(self.id)
        self.title = normalize_title(self.title)
        self.content = self.content or ""
        self.category = normalize_category(self.category)
        self.keywords = self.keywords or ""
        self.last_used_utc = ensure_utc(self.last_used_utc)


@dataclass(frozen=True)
class AiGenerationRequest:
    """One request to the local AI process."""

    prompt: str
    category: str = ""
    keywords: str = ""
    existing_text: str = ""


@dataclass(frozen=True)
class AiRuntimeSettings:
    """Executable, model and sampling parameters for the local AI process.

    ``temperature`` and ``max_tokens`` are clamped on construction to
    [0.1, 1.5] and [64, 1024].
    """

    executable_path: str
    model_path: str
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    def __post_init__(self) -> None:
        object.__setattr__(self, "temperature", clamp_temperature(self.temperature))
        object.__setattr__(self, "max_tokens", clamp_max_tokens(self.max_tokens))


@dataclass(frozen=True)
class ImportResult:
    added: int
    skipped: int
