"""
Key/value persistence stores for the grid layout.

Stores may raise on any operation; the layout codec is responsible for
catching and logging those failures.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_STORE_FILE = Path("grid_state") / "layout.json"


@runtime_checkable
class PersistenceStore(Protocol):
    """String-keyed store of serialized values."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryStore:
    """Process-local store; contents are lost on exit."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """
    Store backed by a single JSON object on disk.

    Every write rewrites the whole file; concurrent writers are
    last-writer-wins.
    """

    def __init__(self, storage_path: Path = None):
        """
        Initialize storage.

        Args:
            storage_path: Optional custom path for the store file.
                         Defaults to grid_state/layout.json
        """
        self.storage_path = Path(storage_path) if storage_path else DEFAULT_STORE_FILE

    def _read_data(self) -> Dict[str, Any]:
        if not self.storage_path.exists():
            return {}
        try:
            with open(self.storage_path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read {self.storage_path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{self.storage_path} does not hold a JSON object")
        return data

    def _write_data(self, data: Dict[str, Any]) -> None:
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.storage_path, 'w') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise StorageError(f"Could not write {self.storage_path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        value = self._read_data().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        data = self._read_data()
        data[key] = value
        self._write_data(data)

    def remove(self, key: str) -> None:
        data = self._read_data()
        if data.pop(key, None) is not None:
            self._write_data(data)
