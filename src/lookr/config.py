"""Lookr settings loader.

Layers (high → low):
  1. Environment: LOOKR_HOME relocates the whole data directory.
  2. ~/.lookr/settings.yaml  (AI runtime + autosave timings)
  3. Hardcoded defaults

A missing settings file yields defaults silently. A broken one (unreadable,
invalid YAML, wrong value types) also yields defaults, with the reason kept
in ``SettingsStore.last_load_error``; settings problems never abort startup.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import math
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from lookr.models import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    AiRuntimeSettings,
    clamp_max_tokens,
    clamp_temperature,
)
from lookr.store.files import atomic_write_text

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_DEFAULT_APP_DIR: Path = Path.home() / ".lookr"
_HOME_ENV_VAR = "LOOKR_HOME"
SETTINGS_FILE_NAME = "settings.yaml"

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["ai", "library"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a settings file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class AiCfg:
    """Local AI runtime (settings.yaml: ai:).

    Attributes:
        executable_path: llama.cpp style CLI executable.
        model_path: GGUF model file passed with ``-m``.
        temperature: Sampling temperature, clamped to [0.1, 1.5].
        max_tokens: Generation length, clamped to [64, 1024].
    """

    executable_path: str = ""
    model_path: str = ""
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    def runtime(self) -> AiRuntimeSettings:
        return AiRuntimeSettings(
            executable_path=self.executable_path,
            model_path=self.model_path,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )


@dataclass
class LibraryCfg:
    """Debounce windows for persistence (settings.yaml: library:)."""

    autosave_delay_ms: int = 600
    settings_delay_ms: int = 700


@dataclass
class AppSettings:
    """Root settings object, built by SettingsStore.load()."""

    ai: AiCfg = field(default_factory=AiCfg)
    library: LibraryCfg = field(default_factory=LibraryCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown settings key '{key}' in '{source}' (ignored).",
                UserWarning,
                stacklevel=4,
            )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Section '{name}' must be a mapping, got {type(raw).__name__}.")
    return raw


def _number(raw: dict[str, Any], key: str, default: float, kind: type) -> Any:
    value = raw.get(key, default)
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a number, got a boolean.")
    try:
        number = kind(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ConfigError(f"'{key}' must be a number, got {value!r}.") from exc
    if isinstance(number, float) and not math.isfinite(number):
        raise ConfigError(f"'{key}' must be a finite number, got {value!r}.")
    return number


# ---------------------------------------------------------------------------
# Build / serialize
# ---------------------------------------------------------------------------


def settings_from_dict(data: dict[str, Any]) -> AppSettings:
    """Build *AppSettings* from a raw YAML dict, clamping numeric AI values."""
    cfg = AppSettings()

    if "ai" in data:
        a = _section(data, "ai")
        cfg.ai = AiCfg(
            executable_path=str(a.get("executable_path") or ""),
            model_path=str(a.get("model_path") or ""),
            temperature=clamp_temperature(
                _number(a, "temperature", cfg.ai.temperature, float)
            ),
            max_tokens=clamp_max_tokens(_number(a, "max_tokens", cfg.ai.max_tokens, int)),
        )

    if "library" in data:
        lib = _section(data, "library")
        cfg.library = LibraryCfg(
            autosave_delay_ms=max(
                0, _number(lib, "autosave_delay_ms", cfg.library.autosave_delay_ms, int)
            ),
            settings_delay_ms=max(
                0, _number(lib, "settings_delay_ms", cfg.library.settings_delay_ms, int)
            ),
        )

    return cfg


def settings_to_dict(cfg: AppSettings) -> dict[str, Any]:
    return {
        "ai": {
            "executable_path": cfg.ai.executable_path,
            "model_path": cfg.ai.model_path,
            "temperature": round(cfg.ai.temperature, 2),
            "max_tokens": cfg.ai.max_tokens,
        },
        "library": {
            "autosave_delay_ms": cfg.library.autosave_delay_ms,
            "settings_delay_ms": cfg.library.settings_delay_ms,
        },
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def app_dir() -> Path:
    """Return the per-user data directory (``$LOOKR_HOME`` or ``~/.lookr``)."""
    if override := os.environ.get(_HOME_ENV_VAR):
        return Path(override).expanduser()
    return _DEFAULT_APP_DIR


class SettingsStore:
    """Plain-text settings file next to the snippet vault.

    Args:
        settings_path: Path of ``settings.yaml``.
    """

    def __init__(self, settings_path: Path | str) -> None:
        self.settings_path = Path(settings_path)
        self.last_load_error: str | None = None

    @classmethod
    def in_directory(cls, directory: Path) -> "SettingsStore":
        return cls(directory / SETTINGS_FILE_NAME)

    def load(self) -> AppSettings:
        """Return the stored settings, or defaults if the file is absent or broken."""
        self.last_load_error = None

        if not self.settings_path.exists():
            return AppSettings()

        try:
            raw = yaml.safe_load(self.settings_path.read_text(encoding="utf-8")) or {}
            if not isinstance(raw, dict):
                raise ConfigError("Settings file must contain a mapping.")
            _warn_unknown_keys(raw, self.settings_path)
            return settings_from_dict(raw)
        except PermissionError:
            self.last_load_error = (
                f"Permission denied while reading settings at '{self.settings_path}'. "
                "Using defaults."
            )
        except OSError as exc:
            self.last_load_error = f"Could not read settings: {exc}. Using defaults."
        except UnicodeDecodeError:
            self.last_load_error = "Settings file is not valid UTF-8 text. Using defaults."
        except (yaml.YAMLError, ConfigError) as exc:
            self.last_load_error = f"Settings file is invalid ({exc}). Using defaults."
        return AppSettings()

    def save(self, cfg: AppSettings) -> None:
        """Write *cfg* atomically.

        Raises:
            OSError: If the file cannot be written.
        """
        content = (
            "# Lookr settings: edited by the app, safe to edit by hand.\n"
            + yaml.safe_dump(settings_to_dict(cfg), sort_keys=False)
        )
        atomic_write_text(self.settings_path, content)
