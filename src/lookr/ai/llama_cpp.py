"""Local AI generation via a llama.cpp style CLI subprocess.

Process contract:
  <exe> -m <model> -n <max_tokens> --temp <t> [--no-display-prompt] -p <prompt>
Success = exit code 0 and non-blank output after cleaning.

Capability negotiation: older builds reject ``--no-display-prompt``. When
the first attempt fails and stderr mentions both that flag and "unknown"
(case-insensitive), the call is retried once without the flag. The echoed
prompt is then removed by :func:`lookr.ai.prompts.clean_output`.

Safety:
- shell=False always (arguments are passed as a list).
- stdout and stderr are drained concurrently with the process
  (``communicate()``), so a chatty process cannot block on a full pipe.
- Cancellation (task cancel or *cancel* event) kills the process.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass

from lookr.ai.prompts import build_prompt, clean_output
from lookr.models import AiGenerationRequest, AiRuntimeSettings

NO_DISPLAY_PROMPT_FLAG = "--no-display-prompt"
_KILL_GRACE_SECONDS = 2.0


class AiGenerationError(RuntimeError):
    """The local AI process could not produce text."""


class GenerationCancelled(AiGenerationError):
    """Generation was cancelled through the cancel event."""


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    output: str
    error: str


def build_arguments(
    settings: AiRuntimeSettings, prompt: str, include_no_display_prompt: bool
) -> list[str]:
    """Command-line arguments (without the executable) for one attempt."""
    args = [
        "-m", settings.model_path,
        "-n", str(settings.max_tokens),
        # f-string formatting is locale-independent: always "0.7", never "0,7".
        "--temp", f"{settings.temperature:.1f}",
    ]
    if include_no_display_prompt:
        args.append(NO_DISPLAY_PROMPT_FLAG)
    args.extend(["-p", prompt])
    return args


def is_unknown_option_error(error_text: str, option: str = NO_DISPLAY_PROMPT_FLAG) -> bool:
    """True if *error_text* names *option* and contains "unknown" (case-insensitive)."""
    if not error_text.strip():
        return False
    lowered = error_text.lower()
    return option.lower() in lowered and "unknown" in lowered


class LlamaCppGenerator:
    """Run the configured executable and return cleaned generated text."""

    async def generate(
        self,
        settings: AiRuntimeSettings,
        request: AiGenerationRequest,
        cancel: asyncio.Event | None = None,
    ) -> str:
        """Generate a quicktext for *request*.

        Args:
            settings: Executable, model and (clamped) sampling parameters.
            request: Prompt plus optional category / keyword hints and text
                to revise.
            cancel: Optional event; setting it aborts the call.

        Raises:
            FileNotFoundError: If the executable or model file is missing.
            AiGenerationError: If the process cannot start, fails after the
                fallback retry, or returns no text after cleaning.
            GenerationCancelled: If *cancel* is set before the process exits.
        """
        if not settings.executable_path or not os.path.isfile(settings.executable_path):
            raise FileNotFoundError(
                f"The llama executable was not found: '{settings.executable_path}'"
            )
        if not settings.model_path or not os.path.isfile(settings.model_path):
            raise FileNotFoundError(
                f"The GGUF model file was not found: '{settings.model_path}'"
            )

        prompt = build_prompt(request)
        attempt = await self._run(
            settings.executable_path,
            build_arguments(settings, prompt, include_no_display_prompt=True),
            cancel,
        )

        if attempt.exit_code != 0 and is_unknown_option_error(attempt.error):
            attempt = await self._run(
                settings.executable_path,
                build_arguments(settings, prompt, include_no_display_prompt=False),
                cancel,
            )

        if attempt.exit_code != 0:
            message = attempt.error.strip() or "Local AI process failed."
            raise AiGenerationError(message)

        cleaned = clean_output(attempt.output)
        if not cleaned:
            raise AiGenerationError("Local AI returned no text.")
        return cleaned

    # ------------------------------------------------------------------
    # Process handling
    # ------------------------------------------------------------------

    async def _run(
        self, executable: str, args: list[str], cancel: asyncio.Event | None
    ) -> ProcessResult:
        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise AiGenerationError(f"Failed to launch the local AI process: {exc}") from exc

        communicate = asyncio.ensure_future(proc.communicate())
        waiter = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        try:
            if waiter is None:
                stdout, stderr = await communicate
            else:
                done, _pending = await asyncio.wait(
                    {communicate, waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                if communicate not in done:
                    raise GenerationCancelled("Local AI generation was cancelled.")
                stdout, stderr = communicate.result()
        except BaseException:
            communicate.cancel()
            await _terminate(proc)
            raise
        finally:
            if waiter is not None:
                waiter.cancel()

        return ProcessResult(
            exit_code=proc.returncode if proc.returncode is not None else -1,
            output=_decode(stdout),
            error=_decode(stderr),
        )


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    """Kill *proc* and wait briefly for it to exit."""
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(proc.wait(), timeout=_KILL_GRACE_SECONDS)
    except (asyncio.TimeoutError, asyncio.CancelledError):
        pass


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
