"""Requests the modernized re-implementation and parses it as it streams."""

from __future__ import annotations

from typing import Iterator, Sequence

from .llm.runner import LLMRunner
from .logging import get_logger
from .models import ReimplementedFile, SourceFile
from .prompting.builder import PromptBuilder
from .stream_parser import parse_record_stream


class Reimplementer:
    """Streams one :class:`ReimplementedFile` per JSON line of the model reply."""

    def __init__(self, runner: LLMRunner, prompt_builder: PromptBuilder | None = None) -> None:
        self.runner = runner
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.logger = get_logger("reimplementer")

    def stream(self, files: Sequence[SourceFile], analysis: str) -> Iterator[ReimplementedFile]:
        prompt = self.prompt_builder.build_reimplementation_prompt(files, analysis)
        self.logger.debug("Re-implementation prompt is %d characters", len(prompt))
        for record in parse_record_stream(self.runner.stream(prompt)):
            self.logger.info("Received %s", record.path)
            yield record


__all__ = ["Reimplementer"]
