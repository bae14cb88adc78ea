"""Tests for reforge.packager."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

from reforge.models import ReimplementedFile
from reforge.packager import ArchivePackager


def _entries(data: bytes) -> dict[str, str]:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return {name: archive.read(name).decode("utf-8") for name in archive.namelist()}


def test_build_archive_writes_one_entry_per_record() -> None:
    records = [
        ReimplementedFile(path="src/app.ts", content="export {};\n"),
        ReimplementedFile(path="README.md", content="# Demo ✓\n"),
    ]

    entries = _entries(ArchivePackager().build_archive(records))

    assert entries == {"src/app.ts": "export {};\n", "README.md": "# Demo ✓\n"}


def test_later_duplicate_path_wins() -> None:
    records = [
        ReimplementedFile(path="a.ts", content="first"),
        ReimplementedFile(path="./a.ts", content="second"),
    ]

    assert _entries(ArchivePackager().build_archive(records)) == {"a.ts": "second"}


def test_unsafe_paths_are_skipped_and_others_normalised() -> None:
    records = [
        ReimplementedFile(path="../escape.sh", content="rm -rf /"),
        ReimplementedFile(path="/abs/path.txt", content="abs"),
        ReimplementedFile(path="win\\style.txt", content="win"),
    ]

    entries = _entries(ArchivePackager().build_archive(records))

    assert entries == {"abs/path.txt": "abs", "win/style.txt": "win"}


def test_write_archive_creates_named_zip(tmp_path: Path) -> None:
    target = ArchivePackager().write_archive(
        [ReimplementedFile(path="a.txt", content="x")], "demo", tmp_path / "out"
    )

    assert target == tmp_path / "out" / "demo.zip"
    assert _entries(target.read_bytes()) == {"a.txt": "x"}
