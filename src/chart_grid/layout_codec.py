"""
Grid layout serialization.

The layout is stored as JSON under one store key:

    {"charts": [{"id", "timeframeId", "width", "height", "order"}, ...],
     "columns": 4}

Store failures never propagate from here: they are logged and reported as
False (writes) or None (reads).
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .constants import GRID_COLUMNS, STORAGE_KEY
from .persistence import PersistenceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridLayoutEntry:
    """Saved placement of one resource."""
    resource_id: str
    timeframe_id: str
    width: int
    height: int
    order: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.resource_id,
            "timeframeId": self.timeframe_id,
            "width": self.width,
            "height": self.height,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GridLayoutEntry":
        return cls(
            resource_id=str(data["id"]),
            timeframe_id=str(data["timeframeId"]),
            width=int(data["width"]),
            height=int(data["height"]),
            order=int(data["order"]),
        )


@dataclass
class GridState:
    """Whole-grid layout: entries in display order plus the column count."""
    entries: List[GridLayoutEntry] = field(default_factory=list)
    columns: int = GRID_COLUMNS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "charts": [e.to_dict() for e in self.entries],
            "columns": self.columns,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GridState":
        """
        Parse a stored layout.

        Malformed chart entries are skipped with a warning; entries are
        returned sorted by their saved order.

        Raises:
            ValueError: If data is not a layout object.
        """
        if not isinstance(data, dict) or not isinstance(data.get("charts"), list):
            raise ValueError("Layout must be an object with a 'charts' list")

        entries = []
        for raw in data["charts"]:
            try:
                entries.append(GridLayoutEntry.from_dict(raw))
            except (KeyError, TypeError, ValueError, OverflowError) as e:
                logger.warning(f"Skipping malformed layout entry {raw!r}: {e}")

        try:
            columns = int(data.get("columns", GRID_COLUMNS))
        except (TypeError, OverflowError) as e:
            raise ValueError(f"Invalid column count {data.get('columns')!r}") from e

        entries.sort(key=lambda e: e.order)
        return cls(entries=entries, columns=columns)


class LayoutCodec:
    """Reads and writes GridState through a PersistenceStore."""

    def __init__(self, store: PersistenceStore, key: str = STORAGE_KEY):
        self.store = store
        self.key = key

    def save(self, state: GridState) -> bool:
        try:
            self.store.set(self.key, json.dumps(state.to_dict()))
        except Exception as e:
            logger.error(f"Failed to save grid state: {e}")
            return False
        return True

    def load(self) -> Optional[GridState]:
        try:
            stored = self.store.get(self.key)
        except Exception as e:
            logger.error(f"Failed to load grid state: {e}")
            return None

        if not stored:
            return None

        try:
            return GridState.from_dict(json.loads(stored))
        except ValueError as e:
            logger.error(f"Failed to parse grid state: {e}")
            return None

    def clear(self) -> bool:
        try:
            self.store.remove(self.key)
        except Exception as e:
            logger.error(f"Failed to clear grid state: {e}")
            return False
        return True
