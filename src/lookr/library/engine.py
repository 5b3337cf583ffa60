"""Live snippet library: derived views, mutations and debounced persistence.

The engine owns the in-memory collection for the whole session. Every
mutation goes through one of its methods, which

  1. changes the collection or a tracked field
     (title, content, category, keywords, last_used_utc),
  2. recomputes the category index and both filtered views,
  3. restarts the debounced library save.

Saves and loads never raise out of the engine: failures become
``status_message`` text and the in-memory state stays authoritative, so the
next mutation retries the save.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from lookr.ai.llama_cpp import AiGenerationError, GenerationCancelled, LlamaCppGenerator
from lookr.clipboard import Clipboard, ClipboardError, CommandClipboard
from lookr.config import AppSettings, SettingsStore
from lookr.ingest.excel import ExcelSnippetImporter
from lookr.library.debounce import Debouncer
from lookr.library.filtering import (
    ALL_CATEGORIES,
    apply_search_and_category,
    build_category_index,
    contains_category,
    is_all_categories,
)
from lookr.models import (
    DEFAULT_CATEGORY,
    AiGenerationRequest,
    ImportResult,
    Snippet,
    clamp_max_tokens,
    clamp_temperature,
    ensure_utc,
    normalize_category,
    normalize_title,
    utcnow,
)
from lookr.store.crypto import CipherError
from lookr.store.secure_store import SecureSnippetStore

NEW_SNIPPET_TITLE = "New QuickText"
AI_FALLBACK_TITLE = "AI QuickText"
DEFAULT_AI_PROMPT = "Write a concise professional follow-up message."

_AI_TITLE_CHARS = 38


def welcome_snippet() -> Snippet:
    return Snippet(
        title="Welcome",
        content="Use Lookr to store reusable quicktexts and copy them instantly.",
        category=DEFAULT_CATEGORY,
        keywords="intro,getting-started",
    )


def identity_key(snippet: Snippet) -> str:
    """Deduplication key: trimmed title and content, case-insensitive."""
    return f"{snippet.title.strip().lower()}::{snippet.content.strip().lower()}"


def title_from_prompt(prompt: str) -> str:
    normalized = (prompt or "").strip()
    if not normalized:
        return AI_FALLBACK_TITLE
    if len(normalized) <= _AI_TITLE_CHARS:
        return normalized
    return normalized[:_AI_TITLE_CHARS] + "..."


@dataclass
class LibraryView:
    """One filterable projection of the library."""

    query: str = ""
    category: str = ALL_CATEGORIES
    items: list[Snippet] = field(default_factory=list)

    def refresh(self, snippets: Iterable[Snippet]) -> None:
        self.items = apply_search_and_category(snippets, self.query, self.category)


class LibraryViewEngine:
    """Reactive core behind the library window and the quick-access widget.

    Args:
        store: Encrypted snippet vault.
        settings_store: Plain-text settings file.
        importer: Spreadsheet importer. Defaults to :class:`ExcelSnippetImporter`.
        generator: Local AI backend. Defaults to :class:`LlamaCppGenerator`.
        clipboard: Clipboard writer. Defaults to :class:`CommandClipboard`.
        autosave_delay: Library save debounce in seconds; overrides settings.
        settings_delay: Settings save debounce in seconds; overrides settings.
        on_open_library: Called by :meth:`request_open_library`.
        on_toggle_widget: Called by :meth:`request_toggle_widget`.
    """

    def __init__(
        self,
        store: SecureSnippetStore,
        settings_store: SettingsStore,
        importer: ExcelSnippetImporter | None = None,
        generator: LlamaCppGenerator | None = None,
        clipboard: Clipboard | None = None,
        *,
        autosave_delay: float | None = None,
        settings_delay: float | None = None,
        on_open_library: Callable[[], None] | None = None,
        on_toggle_widget: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._settings_store = settings_store
        self._importer = importer or ExcelSnippetImporter()
        self._generator = generator or LlamaCppGenerator()
        self._clipboard = clipboard or CommandClipboard()
        self._on_open_library = on_open_library
        self._on_toggle_widget = on_toggle_widget

        self.status_message = "Ready."
        self.load_errors: list[str] = []
        self.save_error: str | None = None

        self.settings: AppSettings = settings_store.load()
        if settings_store.last_load_error:
            self.load_errors.append(settings_store.last_load_error)
            self.status_message = settings_store.last_load_error

        if autosave_delay is None:
            autosave_delay = self.settings.library.autosave_delay_ms / 1000
        if settings_delay is None:
            settings_delay = self.settings.library.settings_delay_ms / 1000
        self._library_saver = Debouncer(autosave_delay, self.save_library)
        self._settings_saver = Debouncer(settings_delay, self.save_settings)

        self.ai_prompt = DEFAULT_AI_PROMPT
        self.ai_output = ""
        self.ai_busy = False

        self.library_view = LibraryView()
        self.widget_view = LibraryView()
        self.category_filters: list[str] = [ALL_CATEGORIES]
        self.selected: Snippet | None = None

        self.snippets: list[Snippet] = store.load()
        if store.last_load_error:
            self.load_errors.append(store.last_load_error)
            self.status_message = store.last_load_error
        if not self.snippets:
            self.snippets.append(welcome_snippet())

        self._refresh_categories()
        self._refresh_views()
        self.selected = self.library_view.items[0] if self.library_view.items else None

    # ------------------------------------------------------------------
    # Lookup / selection
    # ------------------------------------------------------------------

    def get(self, snippet_id: str) -> Snippet | None:
        for snippet in self.snippets:
            if snippet.id == snippet_id:
                return snippet
        return None

    def select(self, snippet_id: str | None) -> Snippet | None:
        """Select the snippet with *snippet_id*; ``None`` clears the selection."""
        if snippet_id is None:
            self.selected = None
            return None
        snippet = self._require(snippet_id)
        self.selected = snippet
        return snippet

    # ------------------------------------------------------------------
    # View setters
    # ------------------------------------------------------------------

    def set_library_query(self, query: str) -> None:
        self.library_view.query = query or ""
        self._refresh_library_view()

    def set_library_category(self, category: str) -> None:
        self.library_view.category = self._resolve_selector(category)
        self._refresh_library_view()

    def set_widget_query(self, query: str) -> None:
        self.widget_view.query = query or ""
        self.widget_view.refresh(self.snippets)

    def set_widget_category(self, category: str) -> None:
        self.widget_view.category = self._resolve_selector(category)
        self.widget_view.refresh(self.snippets)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_snippet(
        self,
        title: str = NEW_SNIPPET_TITLE,
        content: str = "",
        category: str | None = None,
        keywords: str = "",
    ) -> Snippet:
        """Create a snippet and select it.

        Without an explicit *category* the library view's category selector
        is used, or ``"General"`` while it shows all categories.
        """
        if category is None:
            selector = self.library_view.category
            category = DEFAULT_CATEGORY if is_all_categories(selector) else selector

        snippet = Snippet(title=title, content=content, category=category, keywords=keywords)
        self.snippets.append(snippet)
        self.selected = snippet
        self._membership_changed()
        self.status_message = "Created a new quicktext."
        return snippet

    def update_snippet(
        self,
        snippet_id: str,
        *,
        title: str | None = None,
        content: str | None = None,
        category: str | None = None,
        keywords: str | None = None,
        last_used_utc: datetime | None = None,
    ) -> Snippet:
        """Change tracked fields of one snippet; ``None`` leaves a field as is.

        Raises:
            KeyError: If no snippet has *snippet_id*.
        """
        snippet = self._require(snippet_id)
        changed = False
        category_changed = False

        if title is not None and normalize_title(title) != snippet.title:
            snippet.title = normalize_title(title)
            changed = True
        if content is not None and content != snippet.content:
            snippet.content = content
            changed = True
        if category is not None and normalize_category(category) != snippet.category:
            snippet.category = normalize_category(category)
            changed = category_changed = True
        if keywords is not None and keywords != snippet.keywords:
            snippet.keywords = keywords
            changed = True
        if last_used_utc is not None and ensure_utc(last_used_utc) != snippet.last_used_utc:
            snippet.last_used_utc = ensure_utc(last_used_utc)
            changed = True

        if changed:
            self._fields_changed(category_changed)
        return snippet

    def delete_snippet(self, snippet_id: str | None = None) -> Snippet | None:
        """Remove *snippet_id* (default: the selection) and reselect the first visible item."""
        snippet = self._require(snippet_id) if snippet_id else self.selected
        if snippet is None:
            return None

        self.snippets.remove(snippet)
        self.selected = None
        self._membership_changed()
        self.status_message = "Quicktext deleted."
        return snippet

    def copy_snippet(self, snippet_id: str | None = None) -> bool:
        """Copy a snippet's content to the clipboard and mark it as used.

        Returns False without side effects for a missing or empty snippet,
        and with a status message when the clipboard write fails.
        """
        snippet = self.get(snippet_id) if snippet_id else self.selected
        if snippet is None or not snippet.content.strip():
            return False

        try:
            self._clipboard.copy_text(snippet.content)
        except ClipboardError as exc:
            self.status_message = f"Could not copy to clipboard: {exc}"
            return False

        snippet.last_used_utc = utcnow()
        self._fields_changed(category_changed=False)
        self.status_message = f"Copied '{snippet.title}' to clipboard."
        return True

    def import_from_excel(self, path: str | Path) -> ImportResult:
        """Merge a workbook into the library, skipping known title/content pairs.

        Raises:
            SpreadsheetImportError: For size, limit and structure problems.
            FileNotFoundError: If *path* does not exist.
        """
        try:
            imported = self._importer.import_file(path)
        except (OSError, ValueError) as exc:
            self.status_message = f"Import failed: {exc}"
            raise

        if not imported:
            self.status_message = "No quicktexts found in the selected workbook."
            return ImportResult(added=0, skipped=0)

        known = {identity_key(s) for s in self.snippets}
        added = skipped = 0
        first_added: Snippet | None = None
        for snippet in imported:
            key = identity_key(snippet)
            if key in known:
                skipped += 1
                continue
            known.add(key)
            self.snippets.append(snippet)
            first_added = first_added or snippet
            added += 1

        if first_added is not None:
            self.selected = first_added
        self._membership_changed()
        self.status_message = f"Imported {added} quicktexts from Excel."
        return ImportResult(added=added, skipped=skipped)

    # ------------------------------------------------------------------
    # Local AI
    # ------------------------------------------------------------------

    @property
    def is_ai_configured(self) -> bool:
        ai = self.settings.ai
        return (
            bool(ai.executable_path.strip())
            and bool(ai.model_path.strip())
            and os.path.isfile(ai.executable_path)
            and os.path.isfile(ai.model_path)
        )

    @property
    def can_generate_ai(self) -> bool:
        return not self.ai_busy and bool(self.ai_prompt.strip()) and self.is_ai_configured

    async def generate_ai(self, cancel: asyncio.Event | None = None) -> str | None:
        """Generate text for ``ai_prompt`` using the selected snippet as context.

        A call while another generation runs is rejected. On failure the
        previous ``ai_output`` is kept and the reason is put in
        ``status_message``.
        """
        if self.ai_busy:
            self.status_message = "AI generation is already running."
            return None
        if not self.can_generate_ai:
            self.status_message = "Set the AI executable, model path, and prompt first."
            return None

        selected = self.selected
        request = AiGenerationRequest(
            prompt=self.ai_prompt,
            category=selected.category if selected else "",
            keywords=selected.keywords if selected else "",
            existing_text=selected.content if selected else "",
        )

        self.ai_busy = True
        self.status_message = "Generating quicktext locally..."
        try:
            generated = await self._generator.generate(self.settings.ai.runtime(), request, cancel)
        except GenerationCancelled:
            self.status_message = "AI generation was cancelled."
            return None
        except (AiGenerationError, FileNotFoundError) as exc:
            self.status_message = f"AI generation failed: {exc}"
            return None
        finally:
            self.ai_busy = False

        self.ai_output = generated.strip()
        self.status_message = "AI quicktext generated successfully."
        return self.ai_output

    def apply_ai_output(self) -> Snippet | None:
        """Replace the selected snippet's content with the AI output."""
        if self.selected is None or not self.ai_output.strip():
            return None

        self.selected.content = self.ai_output.strip()
        self.selected.last_used_utc = utcnow()
        self._fields_changed(category_changed=False)
        self.status_message = "Applied AI output to selected quicktext."
        return self.selected

    def create_snippet_from_ai(self) -> Snippet | None:
        """Add the AI output as a new snippet titled after the prompt."""
        if not self.ai_output.strip():
            return None

        selected = self.selected
        snippet = Snippet(
            title=title_from_prompt(self.ai_prompt),
            content=self.ai_output.strip(),
            category=selected.category if selected else DEFAULT_CATEGORY,
            keywords=selected.keywords if selected else "",
        )
        self.snippets.append(snippet)
        self.selected = snippet
        self._membership_changed()
        self.status_message = "Created a new quicktext from AI output."
        return snippet

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def update_ai_settings(
        self,
        *,
        executable_path: str | None = None,
        model_path: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        """Change the AI runtime settings; numeric values are clamped."""
        ai = self.settings.ai
        before = (ai.executable_path, ai.model_path, ai.temperature, ai.max_tokens)

        if executable_path is not None:
            ai.executable_path = executable_path.strip()
        if model_path is not None:
            ai.model_path = model_path.strip()
        if temperature is not None:
            ai.temperature = clamp_temperature(temperature)
        if max_tokens is not None:
            ai.max_tokens = clamp_max_tokens(max_tokens)

        if (ai.executable_path, ai.model_path, ai.temperature, ai.max_tokens) != before:
            self._settings_saver.trigger()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @property
    def save_pending(self) -> bool:
        return self._library_saver.pending or self._settings_saver.pending

    def save_library(self) -> bool:
        """Write the collection now. Failures become a status message."""
        try:
            self._store.save(self.snippets)
        except PermissionError:
            self._save_failed("Permission issue while saving snippets.")
        except OSError:
            self._save_failed("Could not save snippets right now. Please try again.")
        except CipherError:
            self._save_failed("Encryption issue while saving snippets.")
        else:
            return True
        return False

    def save_settings(self) -> bool:
        try:
            self._settings_store.save(self.settings)
        except PermissionError:
            self._save_failed("Permission issue while saving app settings.")
        except OSError:
            self._save_failed("Could not save app settings right now.")
        else:
            return True
        return False

    def _save_failed(self, message: str) -> None:
        self.save_error = message
        self.status_message = message

    def persist_now(self) -> None:
        """Run any pending library and settings saves immediately.

        ``save_error`` afterwards holds the last failure of this flush, if any.
        """
        self.save_error = None
        self._library_saver.flush()
        self._settings_saver.flush()

    # ------------------------------------------------------------------
    # Presentation callbacks
    # ------------------------------------------------------------------

    def request_open_library(self) -> None:
        if self._on_open_library is not None:
            self._on_open_library()

    def request_toggle_widget(self) -> None:
        if self._on_toggle_widget is not None:
            self._on_toggle_widget()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, snippet_id: str) -> Snippet:
        snippet = self.get(snippet_id)
        if snippet is None:
            raise KeyError(f"No quicktext with id '{snippet_id}'.")
        return snippet

    def _resolve_selector(self, category: str) -> str:
        """Index spelling of *category*, or the sentinel if it is unknown."""
        if is_all_categories(category or ""):
            return ALL_CATEGORIES
        wanted = category.strip().casefold()
        for entry in self.category_filters:
            if entry.casefold() == wanted:
                return entry
        return ALL_CATEGORIES

    def _membership_changed(self) -> None:
        self._refresh_categories()
        self._refresh_views()
        self._library_saver.trigger()

    def _fields_changed(self, category_changed: bool) -> None:
        if category_changed:
            self._refresh_categories()
        self._refresh_views()
        self._library_saver.trigger()

    def _refresh_categories(self) -> None:
        self.category_filters = build_category_index(self.snippets)
        for view in (self.library_view, self.widget_view):
            if not contains_category(self.category_filters, view.category):
                view.category = ALL_CATEGORIES

    def _refresh_views(self) -> None:
        self._refresh_library_view()
        self.widget_view.refresh(self.snippets)

    def _refresh_library_view(self) -> None:
        self.library_view.refresh(self.snippets)
        if self.selected is not None and self.selected in self.library_view.items:
            return
        self.selected = self.library_view.items[0] if self.library_view.items else None
