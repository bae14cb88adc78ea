"""Builds prompts for the language model from Jinja templates."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..models import SourceFile
from .constants import (
    ANALYSIS_TEMPLATE,
    DEFAULT_MAX_SELECTED_FILES,
    REIMPLEMENT_TEMPLATE,
    REPORT_SECTIONS,
    SELECTION_TEMPLATE,
)

_DEFAULT_TEMPLATES_DIR = Path(__file__).with_name("templates")


def format_files(files: Iterable[SourceFile]) -> str:
    """Concatenate files, wrapping each in ``// FILE:`` / ``// END OF FILE:`` markers."""
    return "".join(
        f"// FILE: {file.path}\n\n{file.content}\n\n// END OF FILE: {file.path}\n\n---\n\n"
        for file in files
    )


class PromptBuilder:
    """Renders the selection, analysis and re-implementation prompts."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env = self._create_env(templates_dir)

    def build_selection_prompt(
        self, paths: Sequence[str], *, max_files: int = DEFAULT_MAX_SELECTED_FILES
    ) -> str:
        return self._render(
            SELECTION_TEMPLATE,
            file_list="\n".join(paths),
            max_files=max_files,
        )

    def build_analysis_prompt(self, files: Sequence[SourceFile]) -> str:
        return self._render(
            ANALYSIS_TEMPLATE,
            code=format_files(files),
            sections=REPORT_SECTIONS,
        )

    def build_reimplementation_prompt(self, files: Sequence[SourceFile], analysis: str) -> str:
        return self._render(
            REIMPLEMENT_TEMPLATE,
            code=format_files(files),
            analysis=analysis,
        )

    def _render(self, template_name: str, **context: object) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context)

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        if str(_DEFAULT_TEMPLATES_DIR) not in directories:
            directories.append(str(_DEFAULT_TEMPLATES_DIR))
        loader = FileSystemLoader(directories)
        return Environment(
            loader=loader,
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )


__all__ = ["PromptBuilder", "format_files"]
