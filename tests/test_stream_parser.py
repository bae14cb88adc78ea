"""Tests for reforge.stream_parser."""

from __future__ import annotations

import json
import random

import pytest

from reforge.models import ReimplementedFile
from reforge.stream_parser import RecordStreamParser, parse_record_stream


def _line(path: str, content: str) -> str:
    return json.dumps({"path": path, "content": content})


SAMPLE_RECORDS = [
    ReimplementedFile(path="src/app.ts", content="export const answer = 42;\n"),
    ReimplementedFile(
        path="src/render.ts",
        content='function render() {\n  return `<div class="{{cls}}">}</div>`;\n}\n',
    ),
    ReimplementedFile(path="README.md", content='Say "hi" \\ bye {not json}'),
]
SAMPLE_STREAM = "\n".join(_line(r.path, r.content) for r in SAMPLE_RECORDS) + "\n"


def _parse(chunks) -> list[ReimplementedFile]:
    return list(parse_record_stream(chunks))


def test_scenario_object_split_mid_key_and_mid_value() -> None:
    chunks = ['{"path":"a.', 'ts","content":"x"}\n{"path":"b.ts",', '"content":"y"}']

    assert _parse(chunks) == [
        ReimplementedFile(path="a.ts", content="x"),
        ReimplementedFile(path="b.ts", content="y"),
    ]


def test_scenario_fence_wrapped_object() -> None:
    assert _parse(['```json\n{"path":"a.ts","content":"z"}```']) == [
        ReimplementedFile(path="a.ts", content="z")
    ]


def test_whole_stream_matches_expected_records() -> None:
    assert _parse([SAMPLE_STREAM]) == SAMPLE_RECORDS


@pytest.mark.parametrize("split", range(1, len(SAMPLE_STREAM)))
def test_any_two_way_split_preserves_order_and_content(split: int) -> None:
    chunks = [SAMPLE_STREAM[:split], SAMPLE_STREAM[split:]]

    assert _parse(chunks) == SAMPLE_RECORDS


def test_character_by_character_stream_preserves_order() -> None:
    assert _parse(list(SAMPLE_STREAM)) == SAMPLE_RECORDS


@pytest.mark.parametrize("seed", range(25))
def test_random_chunking_of_single_object_emits_one_record(seed: int) -> None:
    text = _line("src/deep.ts", 'if (a) { b({c: "}"}); }\n')
    rng = random.Random(seed)
    cuts = sorted(rng.sample(range(1, len(text)), rng.randint(1, 12)))
    chunks = [text[start:end] for start, end in zip([0, *cuts], [*cuts, len(text)])]

    assert _parse(chunks) == [
        ReimplementedFile(path="src/deep.ts", content='if (a) { b({c: "}"}); }\n')
    ]


def test_records_are_emitted_as_soon_as_complete() -> None:
    parser = RecordStreamParser()

    assert parser.feed('{"path":"a.ts","content":"1"}{"path":"b.ts"') == [
        ReimplementedFile(path="a.ts", content="1")
    ]
    assert parser.buffer == '{"path":"b.ts"'
    assert parser.feed(',"content":"2"}') == [ReimplementedFile(path="b.ts", content="2")]
    assert parser.buffer == ""


def test_leading_fence_noise_is_discarded() -> None:
    parser = RecordStreamParser()

    assert parser.feed("```json\n") == []
    assert parser.buffer == ""
    assert parser.feed(_line("a.ts", "x")) == [ReimplementedFile(path="a.ts", content="x")]


def test_prose_before_first_object_is_discarded() -> None:
    chunks = ["Here are the files:\n", _line("a.ts", "x")]

    assert _parse(chunks) == [ReimplementedFile(path="a.ts", content="x")]


def test_partial_fence_split_across_chunks_is_discarded() -> None:
    chunks = ["``", "`json\n", _line("a.ts", "x"), "\n``", "`\n"]

    assert _parse(chunks) == [ReimplementedFile(path="a.ts", content="x")]


def test_malformed_object_between_valid_ones_is_dropped() -> None:
    stream = "\n".join([_line("a.ts", "x"), '{"path": "bad.ts", content: oops}', _line("b.ts", "y")])

    assert _parse([stream]) == [
        ReimplementedFile(path="a.ts", content="x"),
        ReimplementedFile(path="b.ts", content="y"),
    ]


def test_objects_without_path_or_content_are_dropped() -> None:
    stream = "\n".join(
        [
            "{}",
            '{"path": "", "content": "x"}',
            '{"path": "a.ts", "content": ""}',
            '{"path": "a.ts", "content": 3}',
            '{"file": "a.ts", "content": "x"}',
            _line("ok.ts", "kept"),
        ]
    )

    assert _parse([stream]) == [ReimplementedFile(path="ok.ts", content="kept")]


def test_unterminated_string_resynchronises_on_next_line() -> None:
    stream = '{"path": "a.ts", "content": "cut off here\n' + _line("b.ts", "y") + "\n"

    assert _parse([stream]) == [ReimplementedFile(path="b.ts", content="y")]


def test_braces_inside_strings_are_not_structural() -> None:
    content = "}}}{{{ if (x) { return '}'; }"

    assert _parse([_line("a.js", content)]) == [ReimplementedFile(path="a.js", content=content)]


def test_escaped_quotes_do_not_end_strings() -> None:
    content = 'say \\"}\\" and "{"'
    chunks = list(_line("a.txt", content))

    assert _parse(chunks) == [ReimplementedFile(path="a.txt", content=content)]


def test_trailing_incomplete_object_is_ignored() -> None:
    stream = _line("a.ts", "x") + "\n" + '{"path": "b.ts", "content": "unfin'

    assert _parse([stream]) == [ReimplementedFile(path="a.ts", content="x")]


def test_close_discards_residue_without_error() -> None:
    parser = RecordStreamParser()
    parser.feed('{"path": "a.ts"')

    parser.close()

    assert parser.buffer == ""


def test_stray_closing_brace_without_opening_is_kept() -> None:
    parser = RecordStreamParser()

    assert parser.feed("} ") == []
    assert parser.buffer == "} "
    assert parser.feed(_line("a.ts", "x")) == [ReimplementedFile(path="a.ts", content="x")]


def test_duplicate_paths_are_all_emitted() -> None:
    stream = _line("a.ts", "first") + _line("a.ts", "second")

    assert _parse([stream]) == [
        ReimplementedFile(path="a.ts", content="first"),
        ReimplementedFile(path="a.ts", content="second"),
    ]


def test_extra_fields_are_ignored() -> None:
    stream = json.dumps({"path": "a.ts", "content": "x", "language": "ts"})

    assert _parse([stream]) == [ReimplementedFile(path="a.ts", content="x")]


def test_empty_chunks_are_ignored() -> None:
    assert _parse(["", _line("a.ts", "x"), ""]) == [ReimplementedFile(path="a.ts", content="x")]


def test_counts_track_emitted_and_dropped_objects() -> None:
    parser = RecordStreamParser()
    parser.feed(_line("a.ts", "x") + "{broken}" + _line("b.ts", "y"))

    assert parser.emitted == 2
    assert parser.dropped == 1
