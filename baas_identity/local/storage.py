"""
Durable key/value storage for session records.

The current-user store only needs four primitives: a blocking read for
synchronous lookups, and async read/write/remove. Backends:
- FileKeyValueStorage: one JSON file per key on local disk
- MemoryKeyValueStorage: process-local dict, for embedded use and tests
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .file_ops import read_json, read_json_sync, remove_file, write_json_atomic


class KeyValueStorage(ABC):
    """Abstract durable storage for JSON-serializable records."""

    @abstractmethod
    def read(self, key: str) -> dict[str, Any] | None:
        """Read a record synchronously. Returns None when absent."""
        ...

    @abstractmethod
    async def read_async(self, key: str) -> dict[str, Any] | None:
        """Read a record. Returns None when absent."""
        ...

    @abstractmethod
    async def write_async(self, key: str, data: dict[str, Any]) -> None:
        """Write a record, replacing any previous value."""
        ...

    @abstractmethod
    async def remove_async(self, key: str) -> None:
        """Remove a record. Removing an absent key is not an error."""
        ...


class FileKeyValueStorage(KeyValueStorage):
    """File-backed storage.

    Layout:
        {root}/{key}.json

    Keys may contain ``/`` to group records per application,
    e.g. ``my-app/currentUser`` -> ``{root}/my-app/currentUser.json``.
    """

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()

    def _path(self, key: str) -> Path:
        parts = [p for p in key.split("/") if p and p not in (".", "..")]
        if not parts:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root.joinpath(*parts[:-1], f"{parts[-1]}.json")

    def read(self, key: str) -> dict[str, Any] | None:
        return read_json_sync(self._path(key))

    async def read_async(self, key: str) -> dict[str, Any] | None:
        return await read_json(self._path(key))

    async def write_async(self, key: str, data: dict[str, Any]) -> None:
        await write_json_atomic(self._path(key), data)

    async def remove_async(self, key: str) -> None:
        await remove_file(self._path(key))


class MemoryKeyValueStorage(KeyValueStorage):
    """In-memory storage. Records are deep-copied in and out."""

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None):
        self._data: dict[str, dict[str, Any]] = copy.deepcopy(initial or {})

    def read(self, key: str) -> dict[str, Any] | None:
        record = self._data.get(key)
        return copy.deepcopy(record) if record is not None else None

    async def read_async(self, key: str) -> dict[str, Any] | None:
        return self.read(key)

    async def write_async(self, key: str, data: dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(data)

    async def remove_async(self, key: str) -> None:
        self._data.pop(key, None)
