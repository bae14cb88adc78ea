"""Prompt construction for the selection, analysis and re-implementation calls."""

from .builder import PromptBuilder, format_files

__all__ = ["PromptBuilder", "format_files"]
