"""Lookr local AI: llama.cpp subprocess orchestration."""

from lookr.ai.llama_cpp import AiGenerationError, GenerationCancelled, LlamaCppGenerator
from lookr.ai.prompts import OUTPUT_MARKER, build_prompt, clean_output

__all__ = [
    "AiGenerationError",
    "GenerationCancelled",
    "LlamaCppGenerator",
    "OUTPUT_MARKER",
    "build_prompt",
    "clean_output",
]
