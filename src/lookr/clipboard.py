"""Clipboard writes through the platform clipboard command.

Commands, first match wins:
  macOS    pbcopy
  Windows  clip
  Linux    wl-copy (Wayland session), xclip, xsel

shell=False always. A busy clipboard (non-zero exit or timeout) is retried
up to five times, 50 ms apart, before ClipboardError is raised.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import time
from typing import Protocol

_MAX_ATTEMPTS = 5
_RETRY_DELAY_SECONDS = 0.05
_COMMAND_TIMEOUT_SECONDS = 2.0


class ClipboardError(RuntimeError):
    """The clipboard could not be written."""


class Clipboard(Protocol):
    def copy_text(self, text: str) -> None: ...


def detect_command(platform: str | None = None) -> list[str] | None:
    """Return the clipboard command for *platform* (default: this machine), or None."""
    platform = platform or sys.platform
    if platform == "darwin":
        return ["pbcopy"] if shutil.which("pbcopy") else None
    if platform.startswith("win"):
        return ["clip"]

    if os.environ.get("WAYLAND_DISPLAY") and shutil.which("wl-copy"):
        return ["wl-copy"]
    if shutil.which("xclip"):
        return ["xclip", "-selection", "clipboard"]
    if shutil.which("xsel"):
        return ["xsel", "--clipboard", "--input"]
    return None


class CommandClipboard:
    """Pipe text into a clipboard command.

    Args:
        command: Explicit argv; detected from the platform when omitted.
        encoding: Byte encoding of the piped text. ``clip`` reads UTF-16.
    """

    def __init__(self, command: list[str] | None = None, encoding: str | None = None) -> None:
        self.command = command if command is not None else detect_command()
        if encoding is None:
            encoding = "utf-16" if self.command and self.command[0] == "clip" else "utf-8"
        self.encoding = encoding

    def copy_text(self, text: str) -> None:
        """Place *text* on the clipboard. Blank text is ignored.

        Raises:
            ClipboardError: If no clipboard command is available, it cannot
                be started, or it keeps failing after all retries.
        """
        if not text or not text.strip():
            return
        if not self.command:
            raise ClipboardError(
                "No clipboard command found. Install wl-clipboard, xclip or xsel."
            )

        payload = text.encode(self.encoding)
        last_error = ""
        for attempt in range(_MAX_ATTEMPTS):
            try:
                result = subprocess.run(
                    self.command,
                    input=payload,
                    shell=False,
                    capture_output=True,
                    timeout=_COMMAND_TIMEOUT_SECONDS,
                )
            except FileNotFoundError as exc:
                raise ClipboardError(f"Clipboard command not found: {self.command[0]}") from exc
            except subprocess.TimeoutExpired:
                last_error = "timed out"
            else:
                if result.returncode == 0:
                    return
                last_error = result.stderr.decode("utf-8", errors="replace").strip() or (
                    f"exit code {result.returncode}"
                )

            if attempt < _MAX_ATTEMPTS - 1:
                time.sleep(_RETRY_DELAY_SECONDS)

        raise ClipboardError(f"Clipboard is busy ({last_error}).")
