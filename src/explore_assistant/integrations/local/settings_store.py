"""
Local settings store implementation.

This module provides a small key/value store persisted to a JSON file. When
the file cannot be read or written, values are kept in memory for the life of
the process instead.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


def _atomic_write_json(path: Path, payload: Dict) -> None:
    """Atomically write JSON to disk (tempfile + replace)."""

    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        delete=False,
        dir=str(path.parent),
        prefix=path.name,
        suffix=".tmp",
    ) as tmp:
        json.dump(payload, tmp, indent=2)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_path = Path(tmp.name)

    os.replace(tmp_path, path)


class LocalSettingsStore:
    """File-backed settings with an in-memory fallback.

    Keys used by the assistant:
        llm_model - model id, e.g. "gemini-2.5-flash"
        <provider>_api_key - credential per provider, e.g. "openai_api_key"
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        """Initialize the store.

        Args:
            path: JSON file to persist to; None keeps everything in memory
        """
        self.path = Path(path) if path is not None else None
        self._memory: Dict[str, str] = {}
        self._use_memory = self.path is None

    def _read_file(self) -> Dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {self.path} does not hold an object")
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _fall_back(self, error: Exception) -> None:
        logger.warning(
            "Settings file %s unavailable, keeping settings in memory: %s",
            self.path,
            error,
        )
        self._use_memory = True

    def all(self) -> Dict[str, str]:
        if self._use_memory:
            return dict(self._memory)
        try:
            return self._read_file()
        except (OSError, json.JSONDecodeError, ValueError) as e:
            self._fall_back(e)
            return dict(self._memory)

    def get(self, key: str) -> Optional[str]:
        value = self.all().get(key)
        return value or None

    def set(self, key: str, value: Optional[str]) -> None:
        """Store a value; None or empty removes the key."""
        data = self.all()
        if value:
            data[key] = value
        else:
            data.pop(key, None)

        self._memory = dict(data)
        if self._use_memory:
            return
        try:
            _atomic_write_json(self.path, data)
        except OSError as e:
            self._fall_back(e)

    def delete(self, key: str) -> None:
        self.set(key, None)
