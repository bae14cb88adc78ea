"""Streams the architecture and quality report for the selected files."""

from __future__ import annotations

from typing import Callable, Iterator, Optional, Sequence

from .llm.runner import LLMRunner
from .logging import get_logger
from .models import SourceFile
from .prompting.builder import PromptBuilder


class ArchitectureAnalyzer:
    """Requests a markdown review of the code and accumulates the streamed reply."""

    def __init__(self, runner: LLMRunner, prompt_builder: PromptBuilder | None = None) -> None:
        self.runner = runner
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.logger = get_logger("analyzer")

    def stream(self, files: Sequence[SourceFile]) -> Iterator[str]:
        prompt = self.prompt_builder.build_analysis_prompt(files)
        self.logger.debug("Analysis prompt is %d characters for %d files", len(prompt), len(files))
        return self.runner.stream(prompt)

    def analyze(
        self,
        files: Sequence[SourceFile],
        on_chunk: Optional[Callable[[str], None]] = None,
    ) -> str:
        parts: list[str] = []
        for chunk in self.stream(files):
            parts.append(chunk)
            if on_chunk is not None:
                on_chunk(chunk)
        report = "".join(parts)
        self.logger.info("Analysis report received (%d characters)", len(report))
        return report


__all__ = ["ArchitectureAnalyzer"]
