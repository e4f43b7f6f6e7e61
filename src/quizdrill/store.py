"""
Key-value stores backing sessions, banks, history and progress.

Values are JSON text. The session code only relies on get/set/remove, so any
object with those three methods works as a Store.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Protocol

from loguru import logger

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class Store(Protocol):
    """Minimal persistence capability."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStore:
    """Dict-backed store; used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """
    One JSON file per key inside a directory (default ~/.quizdrill).

    Writes go through a temporary file and a rename so a crash mid-write
    leaves the previous value intact.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)
        logger.debug(f"Wrote {len(value)} bytes to {path}")

    def remove(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
