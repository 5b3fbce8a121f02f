"""Key/value storage for dashboard state.

Each key (``portfolio``, ``watchlist``, ``alerts``) is written as one JSON
document. Writes are best effort and loads read a document in full.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


class IStorageService(ABC):
    """Abstract storage for JSON-compatible documents keyed by name."""

    @abstractmethod
    def save(self, key: str, data: Any) -> None:
        """Save data with the given key.

        Args:
            key: Document name
            data: JSON-serializable data to store
        """
        ...

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """Load data for the given key.

        Returns:
            The stored data, or None if not found or unreadable
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        """List the keys currently stored."""
        ...


class JsonFileStorage(IStorageService):
    """One JSON file per key under a base directory.

    A document is written to a temporary file in the same directory and
    moved over the previous one, so a crash mid-write leaves the old
    document intact.
    """

    def __init__(self, base_path: str | Path) -> None:
        self._base_path = Path(base_path).expanduser()
        self._base_path.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base_path

    def _get_file_path(self, key: str) -> Path:
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._base_path / f"{safe_key}.json"

    def save(self, key: str, data: Any) -> None:
        """Save data to a JSON file.

        Raises:
            TypeError: If data is not JSON-serializable
            OSError: If file cannot be written
        """
        file_path = self._get_file_path(key)
        tmp_name = None
        try:
            payload = json.dumps(data, indent=2, ensure_ascii=False)
            fd, tmp_name = tempfile.mkstemp(dir=self._base_path, prefix=f".{file_path.stem}-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, file_path)
            tmp_name = None
        except (TypeError, OSError) as e:
            logger.error(f"Failed to save data for key '{key}': {e}")
            raise
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def load(self, key: str) -> Optional[Any]:
        file_path = self._get_file_path(key)
        if not file_path.exists():
            return None

        try:
            with file_path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupted data for key '{key}': {e}")
            return None
        except OSError as e:
            logger.error(f"Failed to load data for key '{key}': {e}")
            return None

    def delete(self, key: str) -> None:
        file_path = self._get_file_path(key)
        try:
            if file_path.exists():
                file_path.unlink()
        except OSError as e:
            logger.error(f"Failed to delete data for key '{key}': {e}")

    def keys(self) -> List[str]:
        return sorted(p.stem for p in self._base_path.glob("*.json"))
