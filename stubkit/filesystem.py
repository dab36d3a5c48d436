"""Narrow filesystem capability used by the scaffold engine.

Everything the engine touches on disk goes through :class:`FileSystem`, so a
run can be pointed at :class:`MemoryFileSystem` instead of the real disk.
Failures surface as :class:`OSError` in both implementations.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class FileSystem(Protocol):
    def exists(self, path: Path) -> bool: ...

    def make_dirs(self, path: Path) -> None: ...

    def read_text(self, path: Path) -> str: ...

    def write_text(self, path: Path, content: str) -> None: ...


class LocalFileSystem:
    def exists(self, path: Path) -> bool:
        return path.exists()

    def make_dirs(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def write_text(self, path: Path, content: str) -> None:
        path.write_text(content, encoding="utf-8")


class MemoryFileSystem:
    """In-memory stand-in for :class:`LocalFileSystem`.

    Paths are compared as given, so seed and query with the same spelling
    (relative or absolute). ``read_errors``, ``write_errors`` and
    ``mkdir_errors`` map a path to the exception raised when it is touched.
    """

    def __init__(self) -> None:
        self.files: dict[Path, str] = {}
        self.dirs: set[Path] = set()
        self.read_errors: dict[Path, OSError] = {}
        self.write_errors: dict[Path, OSError] = {}
        self.mkdir_errors: dict[Path, OSError] = {}
        self.writes: list[Path] = []
        self.created_dirs: list[Path] = []

    def add_dir(self, path: Path | str) -> None:
        path = Path(path)
        self.dirs.add(path)
        self.dirs.update(parent for parent in path.parents if parent != Path("."))

    def add_file(self, path: Path | str, content: str) -> None:
        path = Path(path)
        self.add_dir(path.parent)
        self.files[path] = content

    def exists(self, path: Path) -> bool:
        path = Path(path)
        return path in self.files or path in self.dirs

    def make_dirs(self, path: Path) -> None:
        path = Path(path)
        if path in self.mkdir_errors:
            raise self.mkdir_errors[path]
        if path in self.files:
            raise FileExistsError(f"File exists: {path}")
        if path not in self.dirs:
            self.created_dirs.append(path)
        self.add_dir(path)

    def read_text(self, path: Path) -> str:
        path = Path(path)
        if path in self.read_errors:
            raise self.read_errors[path]
        if path not in self.files:
            raise FileNotFoundError(f"No such file: {path}")
        return self.files[path]

    def write_text(self, path: Path, content: str) -> None:
        path = Path(path)
        if path in self.write_errors:
            raise self.write_errors[path]
        if path.parent != Path(".") and path.parent not in self.dirs:
            raise FileNotFoundError(f"No such directory: {path.parent}")
        self.files[path] = content
        self.writes.append(path)
