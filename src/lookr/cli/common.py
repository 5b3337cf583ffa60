"""Shared plumbing for lookr commands: open the engine, resolve ids, flush saves."""

from __future__ import annotations

import typer
from rich.console import Console

from lookr.cli.errors import (
    err_ambiguous_ref,
    err_save_failed,
    err_snippet_not_found,
    err_startup,
    warn_load_problem,
)
from lookr.library.engine import LibraryViewEngine
from lookr.models import Snippet
from lookr.session import StartupError, build_engine

console = Console()

SHORT_ID_CHARS = 8


def short_id(snippet: Snippet) -> str:
    return snippet.id[:SHORT_ID_CHARS]


def open_engine() -> LibraryViewEngine:
    """Build the engine over ``$LOOKR_HOME`` / ``~/.lookr``; exit 1 if that fails."""
    try:
        engine = build_engine()
    except StartupError as exc:
        console.print(err_startup(str(exc), exc.log_path))
        raise typer.Exit(1) from exc

    for message in engine.load_errors:
        console.print(warn_load_problem(message))
    return engine


def finish(engine: LibraryViewEngine) -> None:
    """Flush pending saves; exit 1 if one failed."""
    engine.persist_now()
    if engine.save_error:
        console.print(err_save_failed(engine.save_error))
        raise typer.Exit(1)


def resolve_snippet(engine: LibraryViewEngine, ref: str) -> Snippet:
    """Find a snippet by full id, unique id prefix, or exact title (case-insensitive)."""
    ref = ref.strip()
    if not ref:
        console.print(err_snippet_not_found(ref))
        raise typer.Exit(1)

    exact = engine.get(ref)
    if exact is not None:
        return exact

    for candidates in (
        [s for s in engine.snippets if s.id.startswith(ref.lower())],
        [s for s in engine.snippets if s.title.casefold() == ref.casefold()],
    ):
        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            console.print(
                err_ambiguous_ref(ref, [f"{short_id(s)}  {s.title}" for s in candidates])
            )
            raise typer.Exit(1)

    console.print(err_snippet_not_found(ref))
    raise typer.Exit(1)
