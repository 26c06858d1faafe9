"""
Local Store

A string-keyed, string-valued store kept in one JSON file, the server-side
counterpart of browser local storage. Every ``set_item`` rewrites the whole
file.
"""
import json
import os
from pathlib import Path
from typing import Dict, Optional


class LocalStore:
    """File-backed key/value store. Values are opaque strings."""

    def __init__(self, path: str):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        """Read the whole file. A missing file is an empty store."""
        if not self.path.exists():
            return {}
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Local store {self.path} does not hold an object")
        return data

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string for ``key`` or None.

        Raises:
            OSError, ValueError: the file exists but cannot be read or parsed.
        """
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``.

        An unreadable existing file is replaced rather than merged.
        """
        try:
            data = self._read_all()
        except (OSError, ValueError):
            data = {}
        data[key] = value
        os.makedirs(self.path.parent, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False)
        os.replace(tmp_path, self.path)


class MemoryStore:
    """In-process store with the same interface. Used by tests and dry runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value
