"""lookr import: merge an Excel workbook into the library.

Usage:
  lookr import quicktexts.xlsx

The first worksheet is read; its first row names the columns
(Title, Content, Category, Keywords and common synonyms). Rows whose title
and content already exist in the library are skipped.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from lookr.cli.common import console, finish, open_engine
from lookr.cli.errors import err_import_failed


def import_cmd(
    path: Annotated[
        Path,
        typer.Argument(help="Workbook to import (.xlsx or .xlsm)."),
    ],
) -> None:
    """Import quicktexts from an Excel workbook."""
    engine = open_engine()

    try:
        result = engine.import_from_excel(path)
    except (OSError, ValueError) as exc:
        console.print(err_import_failed(str(path), str(exc)))
        raise typer.Exit(1) from exc

    if result.added == 0 and result.skipped == 0:
        console.print(f"[yellow]{escape(engine.status_message)}[/]")
        raise typer.Exit(0)

    finish(engine)
    console.print(f"[green]✓[/] {escape(engine.status_message)}")
    console.print(f"  {result.added} added, {result.skipped} skipped (already in the library)")
