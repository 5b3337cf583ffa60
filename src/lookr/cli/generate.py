"""lookr generate: write a quicktext with the local llama.cpp model.

Usage:
  lookr generate --prompt "Polite reminder about an unpaid invoice"
  lookr generate --prompt "Make it shorter" --for 3fa2 --apply
  lookr generate --prompt "Thank a customer for feedback" --new

--for passes the quicktext's category, keywords and text as context.
--apply overwrites that quicktext with the output; --new saves the output
as a new quicktext titled after the prompt.
"""

from __future__ import annotations

import asyncio
from typing import Annotated, Optional

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from lookr.cli.common import console, finish, open_engine, resolve_snippet, short_id
from lookr.cli.errors import err_ai_failed, err_ai_not_configured, err_no_apply_target


def generate_cmd(
    prompt: Annotated[
        str,
        typer.Option("--prompt", "-p", help="What the quicktext should say."),
    ],
    for_ref: Annotated[
        Optional[str],
        typer.Option("--for", help="Id, id prefix or title of a quicktext used as context."),
    ] = None,
    apply: Annotated[
        bool,
        typer.Option("--apply", help="Overwrite the --for quicktext with the output."),
    ] = False,
    new: Annotated[
        bool,
        typer.Option("--new", help="Save the output as a new quicktext."),
    ] = False,
) -> None:
    """Generate a quicktext with the local AI model."""
    if apply and new:
        console.print("[red]Error:[/] Use either --apply or --new, not both.")
        raise typer.Exit(1)
    if apply and for_ref is None:
        console.print(err_no_apply_target())
        raise typer.Exit(1)

    engine = open_engine()
    if not engine.is_ai_configured:
        console.print(err_ai_not_configured())
        raise typer.Exit(1)

    if for_ref is not None:
        engine.select(resolve_snippet(engine, for_ref).id)
    else:
        engine.select(None)

    engine.ai_prompt = prompt
    with console.status("Generating quicktext locally..."):
        output = asyncio.run(engine.generate_ai())

    if output is None:
        console.print(err_ai_failed(engine.status_message))
        raise typer.Exit(1)

    console.print(Panel(Text(output), title="AI output"))

    if apply:
        snippet = engine.apply_ai_output()
    elif new:
        snippet = engine.create_snippet_from_ai()
    else:
        return

    finish(engine)
    if snippet is not None:
        console.print(
            f"[green]✓[/] {escape(engine.status_message)}  [dim]({short_id(snippet)})[/]"
        )
