"""Filesystem adapter for cc-led."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class FileSystem(Protocol):
    def exists(self, path: Path | str) -> bool: ...

    def read_text(self, path: Path | str) -> str: ...

    def write_text(self, path: Path | str, content: str) -> None: ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    def exists(self, path: Path | str) -> bool:
        return Path(path).exists()

    def read_text(self, path: Path | str) -> str:
        """Read a UTF-8 file. Raises FileNotFoundError if it does not exist."""
        return Path(path).read_text(encoding="utf-8")

    def write_text(self, path: Path | str, content: str) -> None:
        Path(path).write_text(content, encoding="utf-8")
