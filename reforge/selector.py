"""Asks the model which repository files matter for the review."""

from __future__ import annotations

import json
import re
from typing import List, Optional, Sequence

from .errors import SelectionError
from .llm.runner import LLMRunner
from .logging import get_logger
from .models import SourceFile
from .prompting.builder import PromptBuilder
from .prompting.constants import DEFAULT_MAX_SELECTED_FILES

_CODE_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE | re.MULTILINE)


class RelevanceSelector:
    """Sends the full path list to the model and keeps a bounded subset."""

    def __init__(
        self,
        runner: LLMRunner,
        prompt_builder: PromptBuilder | None = None,
        *,
        max_files: int = DEFAULT_MAX_SELECTED_FILES,
    ) -> None:
        self.runner = runner
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.max_files = max_files
        self.logger = get_logger("selector")

    def select(self, paths: Sequence[str]) -> List[str]:
        """Return the model's chosen paths, deduplicated and capped at ``max_files``."""
        prompt = self.prompt_builder.build_selection_prompt(paths, max_files=self.max_files)
        reply = self.runner.run(prompt)
        selected = parse_path_list(reply)

        unique: List[str] = []
        seen: set[str] = set()
        for path in selected:
            if path not in seen:
                seen.add(path)
                unique.append(path)
        if len(unique) > self.max_files:
            self.logger.info(
                "Model selected %d files; keeping the first %d", len(unique), self.max_files
            )
            unique = unique[: self.max_files]
        self.logger.info("Model selected %d of %d files", len(unique), len(paths))
        return unique


def parse_path_list(reply: str) -> List[str]:
    """Parse a JSON array of path strings from a model reply."""
    text = _CODE_FENCE_RE.sub("", reply).strip()
    array_text = _extract_first_array(text)
    if array_text is None:
        raise SelectionError("The model did not return a JSON array of file paths.")
    try:
        payload = json.loads(array_text)
    except json.JSONDecodeError as exc:
        raise SelectionError(f"The model returned an invalid file list: {exc.msg}") from exc
    if not isinstance(payload, list):
        raise SelectionError("The model did not return a JSON array of file paths.")
    return [item.strip() for item in payload if isinstance(item, str) and item.strip()]


def filter_files(files: Sequence[SourceFile], selected: Sequence[str]) -> List[SourceFile]:
    """Keep files whose path was selected, preserving fetch order."""
    wanted = set(selected)
    return [file for file in files if file.path in wanted]


def _extract_first_array(text: str) -> Optional[str]:
    start = text.find("[")
    if start == -1:
        return None
    depth = 0
    in_str = False
    esc = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


__all__ = ["RelevanceSelector", "filter_files", "parse_path_list"]
