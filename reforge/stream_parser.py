"""Incremental extraction of ``{"path", "content"}`` records from a model text stream.

The re-implementation call asks the model for one JSON object per line, but the
reply arrives as arbitrarily sized chunks that can split an object anywhere and
may carry stray text such as markdown code fences. :class:`RecordStreamParser`
keeps a single buffer, finds balanced JSON objects in it as soon as they are
complete and emits them in arrival order.

Brace counting ignores braces inside JSON string literals (honouring backslash
escapes). JSON strings cannot contain a raw newline, so meeting one while inside
a string means the current object is broken: the text up to that newline is
dropped and scanning restarts on the next line.
"""

from __future__ import annotations

import json
import re
from typing import Iterable, Iterator, List, Optional, Tuple

from .logging import get_logger
from .models import ReimplementedFile

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_PREVIEW_CHARS = 120

logger = get_logger("stream_parser")


class RecordStreamParser:
    """Turns a chunked text stream into :class:`ReimplementedFile` records."""

    def __init__(self) -> None:
        self._buffer = ""
        self.emitted = 0
        self.dropped = 0
        self._reset_scan()

    @property
    def buffer(self) -> str:
        """Text received but not yet consumed as a record or noise."""
        return self._buffer

    def feed(self, chunk: str) -> List[ReimplementedFile]:
        """Append a chunk and return every record it completed, in order."""
        if not chunk:
            return []
        self._buffer += chunk
        records: List[ReimplementedFile] = []
        while self._extract_next(records):
            pass
        return records

    def close(self) -> None:
        """Signal end of stream; an incomplete trailing object is discarded."""
        if self._buffer.strip():
            logger.debug(
                "Discarding %d unparsed characters at end of stream", len(self._buffer)
            )
        self._buffer = ""
        self._reset_scan()

    def _reset_scan(self) -> None:
        self._scanning = False
        self._position = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False

    def _extract_next(self, records: List[ReimplementedFile]) -> bool:
        """Run one extraction step; return True when the buffer changed."""
        if not self._scanning:
            start = self._buffer.find("{")
            if start == -1:
                self._discard_noise()
                return False
            if start:
                self._buffer = self._buffer[start:]
            self._scanning = True

        result = self._scan()
        if result is None:
            return False

        end, complete = result
        candidate = self._buffer[: end + 1]
        self._buffer = self._buffer[end + 1 :]
        self._reset_scan()

        if not complete:
            self.dropped += 1
            logger.warning(
                "Dropping unterminated JSON fragment from stream: %s", _preview(candidate)
            )
            return True

        record = self._decode(candidate)
        if record is not None:
            self.emitted += 1
            records.append(record)
        return True

    def _scan(self) -> Optional[Tuple[int, bool]]:
        """Resume scanning the object at the buffer head.

        Returns ``(index, True)`` for the closing brace of a balanced object,
        ``(index, False)`` for a raw newline inside a string literal, or
        ``None`` when more input is needed.
        """
        buffer = self._buffer
        for index in range(self._position, len(buffer)):
            char = buffer[index]
            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif char == "\\":
                    self._escaped = True
                elif char == '"':
                    self._in_string = False
                elif char == "\n":
                    return index, False
                continue
            if char == '"':
                self._in_string = True
            elif char == "{":
                self._depth += 1
            elif char == "}":
                self._depth -= 1
                if self._depth == 0:
                    return index, True
        self._position = len(buffer)
        return None

    def _discard_noise(self) -> None:
        # A stray closing brace may belong to input we cannot interpret yet.
        if "}" in self._buffer:
            return
        self._buffer = _FENCE_RE.sub("", self._buffer).strip()

    def _decode(self, candidate: str) -> Optional[ReimplementedFile]:
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as exc:
            self.dropped += 1
            logger.warning(
                "Failed to parse JSON object from stream (%s): %s", exc.msg, _preview(candidate)
            )
            return None

        path = payload.get("path") if isinstance(payload, dict) else None
        content = payload.get("content") if isinstance(payload, dict) else None
        if not isinstance(path, str) or not path or not isinstance(content, str) or not content:
            self.dropped += 1
            logger.warning(
                "Stream object is missing a non-empty path or content: %s", _preview(candidate)
            )
            return None
        return ReimplementedFile(path=path, content=content)


def parse_record_stream(chunks: Iterable[str]) -> Iterator[ReimplementedFile]:
    """Yield records from ``chunks`` as soon as each one is complete."""
    parser = RecordStreamParser()
    try:
        for chunk in chunks:
            yield from parser.feed(chunk)
    finally:
        parser.close()
    logger.debug("Stream ended: %d records emitted, %d dropped", parser.emitted, parser.dropped)


def _preview(text: str) -> str:
    flattened = text.replace("\n", "\\n")
    if len(flattened) <= _PREVIEW_CHARS:
        return flattened
    return flattened[:_PREVIEW_CHARS] + "..."


__all__ = ["RecordStreamParser", "parse_record_stream"]
