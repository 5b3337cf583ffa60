"""Lookr rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from lookr.cli.errors import err_snippet_not_found
    console.print(err_snippet_not_found("3fa2"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from pathlib import Path

from rich.markup import escape


def err_startup(message: str, log_path: Path | None) -> str:
    """Core services could not be constructed."""
    where = f"  Crash report:  {escape(str(log_path))}\n" if log_path else ""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        f"{where}"
        "  Check that the data directory is writable, or set LOOKR_HOME to another directory."
    )


def err_snippet_not_found(ref: str) -> str:
    """No snippet matches an id, id prefix or title."""
    return (
        f"[red]Error:[/] No quicktext matches '{escape(ref)}'.\n"
        "  Run:  lookr list  to see ids and titles."
    )


def err_ambiguous_ref(ref: str, candidates: list[str]) -> str:
    """An id prefix or title matches more than one snippet."""
    listed = "\n".join(f"    {escape(c)}" for c in candidates)
    return (
        f"[red]Error:[/] '{escape(ref)}' matches more than one quicktext:\n"
        f"{listed}\n"
        "  Use a longer id prefix."
    )


def err_save_failed(message: str) -> str:
    """A library or settings save failed."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Your change was not written. Check free disk space and permissions of the "
        "data directory, then run the command again."
    )


def err_import_failed(path: str, message: str) -> str:
    """The workbook was rejected; nothing was imported."""
    return (
        f"[red]Error:[/] Could not import '{escape(path)}': {escape(message)}\n"
        "  Use an .xlsx or .xlsm file with a Title or Content column in the first row."
    )


def err_ai_not_configured() -> str:
    """Executable or model path missing or not a file."""
    return (
        "[red]Error:[/] The local AI is not configured.\n"
        "  Run:  lookr settings set --executable <llama-cli> --model <model.gguf>"
    )


def err_ai_failed(message: str) -> str:
    """The local AI process failed or returned nothing."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Run the executable by hand with the same model to check it works, "
        "or try a different model."
    )


def err_clipboard(message: str) -> str:
    """The clipboard command failed."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Use:  lookr show <id>  and copy the text manually."
    )


def err_no_apply_target() -> str:
    """--apply given but no snippet to apply to."""
    return (
        "[red]Error:[/] --apply needs a quicktext to overwrite.\n"
        "  Use:  lookr generate --prompt ... --for <id> --apply"
    )


def warn_load_problem(message: str) -> str:
    """Recoverable load problem: the command continues with defaults."""
    return f"[yellow]Warning:[/] {escape(message)}"
