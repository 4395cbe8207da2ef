"""
Local durable storage backends.

- InMemoryLocalStorage: For tests and ephemeral contexts
- FileLocalStorage: One file per key in a directory; survives process restarts
- SupabaseAuthStorage: Async adapter so the Supabase auth client can persist
  its own session in the same directory
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from .interfaces import ILocalStorage


class InMemoryLocalStorage:
    """Local storage kept in a dict. Lost when the process exits."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileLocalStorage:
    """
    Local storage backed by files in a directory.

    Each key maps to one file. Writes go to a temporary file in the same
    directory and are moved into place, so a crash mid-write never leaves
    a truncated value behind. I/O errors propagate to the caller.
    """

    _UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")

    def __init__(self, directory: str | os.PathLike) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        return self._directory / f"{self._UNSAFE_CHARS.sub('_', key)}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove_item(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)


class SupabaseAuthStorage:
    """
    Async storage adapter for the Supabase auth client.

    The auth client persists its session through get_item/set_item/
    remove_item coroutines; this forwards them to a local storage.
    """

    def __init__(self, storage: ILocalStorage) -> None:
        self._storage = storage

    async def get_item(self, key: str) -> Optional[str]:
        return self._storage.get_item(key)

    async def set_item(self, key: str, value: str) -> None:
        self._storage.set_item(key, value)

    async def remove_item(self, key: str) -> None:
        self._storage.remove_item(key)
