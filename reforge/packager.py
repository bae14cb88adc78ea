"""Bundles re-implemented files into a zip archive."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, Optional

from .logging import get_logger
from .models import ReimplementedFile


class ArchivePackager:
    """Writes one archive entry per record path."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self.compression = compression
        self.logger = get_logger("packager")

    def build_archive(self, records: Iterable[ReimplementedFile]) -> bytes:
        """Return the zip archive bytes for ``records``.

        A later record with the same path replaces the earlier content.
        """
        entries: Dict[str, str] = {}
        for record in records:
            name = self._entry_name(record.path)
            if name is None:
                self.logger.warning("Skipping archive entry with unsafe path %r", record.path)
                continue
            entries[name] = record.content

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=self.compression) as archive:
            for name, content in entries.items():
                archive.writestr(name, content.encode("utf-8"))
        self.logger.debug("Packed %d entries", len(entries))
        return buffer.getvalue()

    def write_archive(
        self, records: Iterable[ReimplementedFile], name: str, directory: Path
    ) -> Path:
        """Write ``<name>.zip`` into ``directory`` and return its path."""
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / f"{name}.zip"
        target.write_bytes(self.build_archive(records))
        self.logger.info("Archive written to %s", target)
        return target

    @staticmethod
    def _entry_name(path: str) -> Optional[str]:
        normalised = path.replace("\\", "/").strip()
        while normalised.startswith("./"):
            normalised = normalised[2:]
        normalised = normalised.lstrip("/")
        parts = [part for part in PurePosixPath(normalised).parts if part not in ("", ".")]
        if not parts or ".." in parts:
            return None
        return "/".join(parts)


__all__ = ["ArchivePackager"]
