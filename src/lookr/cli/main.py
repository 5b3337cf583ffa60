"""Lookr CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from lookr.cli.generate import generate_cmd
from lookr.cli.imports import import_cmd
from lookr.cli.settings import settings_app
from lookr.cli.snippets import (
    add_cmd,
    categories_cmd,
    copy_cmd,
    delete_cmd,
    edit_cmd,
    list_cmd,
    show_cmd,
)


def _installed_version() -> str:
    try:
        return importlib.metadata.version("lookr")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"lookr {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="lookr",
    help=(
        "Lookr QuickText: encrypted snippet library.\n\n"
        "  lookr list       Search and filter quicktexts.\n"
        "  lookr copy <id>  Put a quicktext on the clipboard.\n"
        "  lookr import     Bulk-add quicktexts from an Excel workbook.\n"
        "  lookr generate   Write a quicktext with a local llama.cpp model."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Lookr QuickText: encrypted snippet library."""


app.command("list")(list_cmd)
app.command("show")(show_cmd)
app.command("add")(add_cmd)
app.command("edit")(edit_cmd)
app.command("delete")(delete_cmd)
app.command("copy")(copy_cmd)
app.command("categories")(categories_cmd)
app.command("import")(import_cmd)
app.command("generate")(generate_cmd)
app.add_typer(settings_app, name="settings")


@app.command("version")
def version_cmd() -> None:
    """Show the installed Lookr version."""
    typer.echo(f"lookr {_installed_version()}")


if __name__ == "__main__":
    app()
