"""Fatal diagnostic log for failures while composing the core services.

One file per crash: ``<home>/logs/fatal-YYYYmmdd-HHMMSS.log`` with the UTC
timestamp, interpreter and platform details and a rendered traceback.
"""

from __future__ import annotations

import platform
import sys
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.traceback import Traceback

LOG_DIR_NAME = "logs"


def write_fatal_log(exc: BaseException, directory: Path) -> Path | None:
    """Write a crash report for *exc* into *directory*.

    Returns the log path, or None when the report itself cannot be written.
    """
    now = datetime.now(timezone.utc)
    path = directory / f"fatal-{now:%Y%m%d-%H%M%S}.log"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            console = Console(file=fh, width=120, no_color=True, force_terminal=False)
            console.print(f"TimestampUtc: {now.isoformat()}", highlight=False)
            console.print(f"Executable: {sys.executable}", highlight=False)
            console.print(f"Python: {platform.python_version()}", highlight=False)
            console.print(f"Platform: {platform.platform()}", highlight=False)
            console.print(f"Exception: {type(exc).__name__}: {exc}", highlight=False)
            console.print()
            console.print(
                Traceback.from_exception(type(exc), exc, exc.__traceback__, show_locals=False)
            )
    except OSError:
        return None
    return path
