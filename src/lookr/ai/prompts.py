"""Prompt construction and output cleaning for the local AI process."""

from __future__ import annotations

from lookr.models import AiGenerationRequest

OUTPUT_MARKER = "### Output:"

_PREAMBLE = (
    "You generate ready-to-paste quicktexts.\n"
    "Return only the final quicktext with no markdown and no explanation.\n"
)

# Diagnostic lines llama.cpp builds print to stdout.
_NOISE_PREFIXES = ("main:", "llama_", "sampling:", "build:")


def build_prompt(request: AiGenerationRequest) -> str:
    """Assemble the single prompt string passed with ``-p``.

    Ends with :data:`OUTPUT_MARKER` so an echoed prompt can be cut away.
    """
    lines = [_PREAMBLE, f"Request: {request.prompt.strip()}"]

    if request.category.strip():
        lines.append(f"Category hint: {request.category.strip()}")
    if request.keywords.strip():
        lines.append(f"Keywords hint: {request.keywords.strip()}")
    if request.existing_text.strip():
        lines.append("Existing text to improve:")
        lines.append(request.existing_text.strip())

    lines.append("")
    lines.append(OUTPUT_MARKER)
    return "\n".join(lines) + "\n"


def clean_output(raw: str) -> str:
    """Strip log noise and any echoed prompt from raw process output.

    Empty lines and lines starting with a known diagnostic prefix are
    dropped; if the output marker is present only the text after its last
    occurrence is kept.
    """
    lines = [
        line
        for line in raw.replace("\r", "").split("\n")
        if line and not line.lower().startswith(_NOISE_PREFIXES)
    ]
    combined = "\n".join(lines).strip()

    marker_index = combined.lower().rfind(OUTPUT_MARKER.lower())
    if marker_index >= 0:
        combined = combined[marker_index + len(OUTPUT_MARKER):]

    return combined.strip()
