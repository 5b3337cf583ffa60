"""Compose the core services into a ready LibraryViewEngine."""

from __future__ import annotations

from pathlib import Path

from lookr.ai.llama_cpp import LlamaCppGenerator
from lookr.clipboard import Clipboard
from lookr.config import SettingsStore, app_dir
from lookr.crashlog import LOG_DIR_NAME, write_fatal_log
from lookr.ingest.excel import ExcelSnippetImporter
from lookr.library.engine import LibraryViewEngine
from lookr.store.secure_store import SecureSnippetStore


class StartupError(RuntimeError):
    """The core services could not be constructed.

    Attributes:
        log_path: Crash report written for the failure, if any.
    """

    def __init__(self, message: str, log_path: Path | None = None) -> None:
        super().__init__(message)
        self.log_path = log_path


def build_engine(
    home: Path | None = None,
    *,
    clipboard: Clipboard | None = None,
    generator: LlamaCppGenerator | None = None,
) -> LibraryViewEngine:
    """Return an engine over the data directory *home* (default: :func:`app_dir`).

    Raises:
        StartupError: If any service fails to initialise. A crash report is
            written to ``<home>/logs`` first.
    """
    home = home or app_dir()
    try:
        store = SecureSnippetStore.in_directory(home)
        settings_store = SettingsStore.in_directory(home)
        return LibraryViewEngine(
            store,
            settings_store,
            importer=ExcelSnippetImporter(),
            generator=generator or LlamaCppGenerator(),
            clipboard=clipboard,
        )
    except Exception as exc:
        log_path = write_fatal_log(exc, home / LOG_DIR_NAME)
        raise StartupError(f"Lookr could not start: {exc}", log_path) from exc

