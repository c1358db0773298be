"""
Local durable storage for the session record.

Key classes:
- KeyValueStorage: Abstract storage contract used by the current-user store
- FileKeyValueStorage: JSON files on disk with atomic writes
- MemoryKeyValueStorage: In-process storage
"""

from .file_ops import read_json, read_json_sync, remove_file, write_json_atomic
from .storage import FileKeyValueStorage, KeyValueStorage, MemoryKeyValueStorage

__all__ = [
    "KeyValueStorage",
    "FileKeyValueStorage",
    "MemoryKeyValueStorage",
    # Low-level file operations
    "read_json",
    "read_json_sync",
    "write_json_atomic",
    "remove_file",
]
