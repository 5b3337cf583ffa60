"""lookr settings CLI commands.

Commands:
  lookr settings show   show the AI runtime and autosave settings
  lookr settings set    change AI executable, model, temperature or max tokens
"""

from __future__ import annotations

import math
from typing import Annotated, Optional

import typer
from rich.table import Table
from rich.text import Text

from lookr.cli.common import console, finish, open_engine
from lookr.config import SETTINGS_FILE_NAME, app_dir
from lookr.models import MAX_TOKENS_MAX, MAX_TOKENS_MIN, TEMPERATURE_MAX, TEMPERATURE_MIN

settings_app = typer.Typer(
    name="settings",
    help="Show or change Lookr settings.",
    add_completion=False,
)


def _path_cell(path: str) -> Text:
    return Text(path) if path else Text("(not set)", style="dim")


def _finite(value: Optional[float]) -> Optional[float]:
    if value is not None and not math.isfinite(value):
        raise typer.BadParameter("must be a finite number.")
    return value


@settings_app.command("show")
def settings_show_cmd() -> None:
    """Show the current settings."""
    engine = open_engine()
    cfg = engine.settings

    table = Table(title="Settings", show_header=True, header_style="bold")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("ai.executable_path", _path_cell(cfg.ai.executable_path))
    table.add_row("ai.model_path", _path_cell(cfg.ai.model_path))
    table.add_row("ai.temperature", f"{cfg.ai.temperature:.1f}")
    table.add_row("ai.max_tokens", str(cfg.ai.max_tokens))
    table.add_row("library.autosave_delay_ms", str(cfg.library.autosave_delay_ms))
    table.add_row("library.settings_delay_ms", str(cfg.library.settings_delay_ms))
    console.print(table)

    console.print(Text(f"\n  File: {app_dir() / SETTINGS_FILE_NAME}"))
    if engine.is_ai_configured:
        console.print("  Local AI: [green]✓ ready[/]")
    else:
        console.print("  Local AI: [yellow]✗ not configured[/]")


@settings_app.command("set")
def settings_set_cmd(
    executable: Annotated[
        Optional[str],
        typer.Option("--executable", help="llama.cpp CLI executable (e.g. llama-cli)."),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", help="GGUF model file."),
    ] = None,
    temperature: Annotated[
        Optional[float],
        typer.Option(
            "--temperature",
            callback=_finite,
            help=f"Sampling temperature, clamped to {TEMPERATURE_MIN}-{TEMPERATURE_MAX}.",
        ),
    ] = None,
    max_tokens: Annotated[
        Optional[int],
        typer.Option(
            "--max-tokens",
            help=f"Tokens to generate, clamped to {MAX_TOKENS_MIN}-{MAX_TOKENS_MAX}.",
        ),
    ] = None,
) -> None:
    """Change AI runtime settings."""
    if all(v is None for v in (executable, model, temperature, max_tokens)):
        console.print(
            "[yellow]Nothing to change.[/] Pass --executable, --model, --temperature or --max-tokens."
        )
        raise typer.Exit(0)

    engine = open_engine()
    engine.update_ai_settings(
        executable_path=executable,
        model_path=model,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    finish(engine)

    ai = engine.settings.ai
    console.print("[green]✓[/] Settings saved.")
    console.print(
        f"  temperature={ai.temperature:.1f}  max_tokens={ai.max_tokens}", highlight=False
    )
