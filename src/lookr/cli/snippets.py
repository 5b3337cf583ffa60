"""lookr snippet commands: list, show, add, edit, delete, copy, categories.

Usage:
  lookr list --query follow --category General
  lookr add --title "Thanks" --content "Thanks for your message." --category Email
  lookr edit 3fa2 --keywords "reply,thanks"
  lookr copy 3fa2
  lookr delete 3fa2 --yes

Snippets are addressed by full id, a unique id prefix, or their exact title.
"""

from __future__ import annotations

from collections import Counter
from typing import Annotated, Optional

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from lookr.cli.common import console, finish, open_engine, resolve_snippet, short_id
from lookr.cli.errors import err_clipboard
from lookr.library.engine import NEW_SNIPPET_TITLE
from lookr.library.filtering import ALL_CATEGORIES

_TIME_FORMAT = "%Y-%m-%d %H:%M"


def list_cmd(
    query: Annotated[
        str,
        typer.Option("--query", "-q", help="Case-insensitive text to search for."),
    ] = "",
    category: Annotated[
        str,
        typer.Option("--category", "-c", help="Only show this category."),
    ] = ALL_CATEGORIES,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=1, help="Show at most this many quicktexts."),
    ] = 50,
) -> None:
    """List quicktexts, most recently used first."""
    engine = open_engine()
    engine.set_library_query(query)
    engine.set_library_category(category)
    items = engine.library_view.items

    if not items:
        console.print("[yellow]No quicktexts match.[/]")
        raise typer.Exit(0)

    table = Table(title="QuickTexts", show_header=True, header_style="bold")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Category")
    table.add_column("Keywords")
    table.add_column("Last used", no_wrap=True)

    for snippet in items[:limit]:
        table.add_row(
            short_id(snippet),
            Text(snippet.title),
            Text(snippet.category),
            Text(snippet.keywords),
            snippet.last_used_utc.strftime(_TIME_FORMAT),
        )

    console.print(table)
    console.print(f"\n  {min(len(items), limit)}/{len(engine.snippets)} shown")


def show_cmd(
    ref: Annotated[str, typer.Argument(help="Id, id prefix or title.")],
) -> None:
    """Show one quicktext in full."""
    engine = open_engine()
    snippet = resolve_snippet(engine, ref)

    console.print(f"[dim]{snippet.id}[/]")
    console.print(f"  Category:  {snippet.category}", highlight=False, markup=False)
    console.print(f"  Keywords:  {snippet.keywords or '-'}", highlight=False, markup=False)
    console.print(f"  Last used: {snippet.last_used_utc.strftime(_TIME_FORMAT)} UTC")
    console.print(Panel(Text(snippet.content or "(empty)"), title=Text(snippet.title)))


def add_cmd(
    title: Annotated[
        str,
        typer.Option("--title", "-t", help="Title shown in lists."),
    ] = NEW_SNIPPET_TITLE,
    content: Annotated[
        str,
        typer.Option("--content", help="Text placed on the clipboard by 'lookr copy'."),
    ] = "",
    category: Annotated[
        Optional[str],
        typer.Option("--category", "-c", help="Category (default: General)."),
    ] = None,
    keywords: Annotated[
        str,
        typer.Option("--keywords", "-k", help="Comma-separated search keywords."),
    ] = "",
) -> None:
    """Add a quicktext."""
    engine = open_engine()
    snippet = engine.add_snippet(title=title, content=content, category=category, keywords=keywords)
    finish(engine)
    console.print(f"[green]✓[/] Added: {escape(snippet.title)}  [dim]({short_id(snippet)})[/]")


def edit_cmd(
    ref: Annotated[str, typer.Argument(help="Id, id prefix or title.")],
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="New title.")] = None,
    content: Annotated[Optional[str], typer.Option("--content", help="New text.")] = None,
    category: Annotated[
        Optional[str], typer.Option("--category", "-c", help="New category.")
    ] = None,
    keywords: Annotated[
        Optional[str], typer.Option("--keywords", "-k", help="New keywords.")
    ] = None,
) -> None:
    """Change fields of a quicktext."""
    if all(v is None for v in (title, content, category, keywords)):
        console.print("[yellow]Nothing to change.[/] Pass --title, --content, --category or --keywords.")
        raise typer.Exit(0)

    engine = open_engine()
    snippet = resolve_snippet(engine, ref)
    engine.update_snippet(
        snippet.id, title=title, content=content, category=category, keywords=keywords
    )
    finish(engine)
    console.print(f"[green]✓[/] Updated: {escape(snippet.title)}  [dim]({short_id(snippet)})[/]")


def delete_cmd(
    ref: Annotated[str, typer.Argument(help="Id, id prefix or title.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Delete a quicktext."""
    engine = open_engine()
    snippet = resolve_snippet(engine, ref)

    console.print(
        f"\nDelete quicktext: [bold]{escape(snippet.title)}[/]  [dim]({short_id(snippet)})[/]"
    )
    if not yes:
        if not typer.confirm("Confirm delete?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    engine.delete_snippet(snippet.id)
    finish(engine)
    console.print(f"[green]✓[/] Deleted: {escape(snippet.title)}")


def copy_cmd(
    ref: Annotated[str, typer.Argument(help="Id, id prefix or title.")],
) -> None:
    """Copy a quicktext to the clipboard."""
    engine = open_engine()
    snippet = resolve_snippet(engine, ref)

    if not snippet.content.strip():
        console.print(f"[yellow]Nothing to copy:[/] '{escape(snippet.title)}' has no content.")
        raise typer.Exit(1)

    if not engine.copy_snippet(snippet.id):
        console.print(err_clipboard(engine.status_message))
        raise typer.Exit(1)

    finish(engine)
    console.print(f"[green]✓[/] {escape(engine.status_message)}")


def categories_cmd() -> None:
    """List categories with the number of quicktexts in each."""
    engine = open_engine()
    counts = Counter(s.category.casefold() for s in engine.snippets)

    table = Table(title="Categories", show_header=True, header_style="bold")
    table.add_column("Category", style="bold")
    table.add_column("QuickTexts", justify="right")
    for category in engine.category_filters[1:]:
        table.add_row(Text(category), str(counts[category.casefold()]))

    console.print(table)
