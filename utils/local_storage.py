"""
Local Storage Module

A small JSON key/value store on disk. Each key is kept in its own
``<key>.json`` file inside the storage directory, holding the JSON-encoded
value the way a browser keeps it under localStorage.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


class LocalStorage:
    """Key/value persistence backed by a directory of JSON files."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[Any]:
        """
        Read and decode a stored value.

        Returns:
            The decoded value, or None when the key is missing or unreadable
        """
        path = self._path(key)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Could not read stored key '{key}': {e}")
            return None

    def set_item(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(value, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def keys(self) -> List[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))
