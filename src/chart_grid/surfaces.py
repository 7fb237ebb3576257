"""
Headless rendering surfaces.

SnapshotSurface keeps everything it is told to draw in plain Python
structures. The HTTP server serves these snapshots to clients that do their
own drawing, and tests inspect them directly.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..swing_analysis.types import Candle
from .rendering import DimensionCallback, PanelElement, Unsubscribe, VisibleRange

logger = logging.getLogger(__name__)


class SnapshotSurface:
    """Records candles, overlay line, status and viewport for one panel."""

    def __init__(self, element: PanelElement):
        self.element = element
        self.candles: List[Candle] = []
        self.line: List[Dict[str, float]] = []
        self.status_text: str = ""
        self.status_failed = False
        self.visible_range: Optional[VisibleRange] = None
        self.size: Tuple[int, int] = (element.width, element.height)
        self.released = False
        self.calls: List[str] = []
        self._callbacks: List[DimensionCallback] = []

    def _record(self, name: str) -> None:
        if self.released:
            raise RuntimeError(f"{name} called on released surface for {self.element.resource_id}")
        self.calls.append(name)

    def set_candle_data(self, candles: Sequence[Candle]) -> None:
        self._record("set_candle_data")
        self.candles = list(candles)

    def set_line_data(self, points: Sequence[Dict[str, float]]) -> None:
        self._record("set_line_data")
        self.line = [dict(p) for p in points]

    def resize(self, width: int, height: int) -> None:
        self._record("resize")
        self.size = (width, height)

    def fit_visible_range(self) -> None:
        self._record("fit_visible_range")
        if self.candles:
            self.visible_range = VisibleRange(self.candles[0].time, self.candles[-1].time)

    def get_visible_range(self) -> Optional[VisibleRange]:
        return self.visible_range

    def set_visible_range(self, visible: VisibleRange) -> None:
        self._record("set_visible_range")
        self.visible_range = visible

    def container_size(self) -> Optional[Tuple[int, int]]:
        return (self.element.width, self.element.height)

    def set_status(self, text: str, failed: bool = False) -> None:
        self._record("set_status")
        self.status_text = text
        self.status_failed = failed

    def on_dimension_change(self, callback: DimensionCallback) -> Unsubscribe:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def notify_dimension_change(self, width: int, height: int) -> None:
        """Simulate the container being resized by its host."""
        self.element.width = width
        self.element.height = height
        for callback in list(self._callbacks):
            callback(width, height)

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def release(self) -> None:
        if self.released:
            return
        self._callbacks.clear()
        self.released = True

    def snapshot(self) -> Dict[str, Any]:
        return {
            "candles": [
                {
                    "time": c.time,
                    "open": c.open,
                    "high": c.high,
                    "low": c.low,
                    "close": c.close,
                    "volume": c.volume,
                }
                for c in self.candles
            ],
            "swingLine": list(self.line),
            "status": self.status_text,
            "failed": self.status_failed,
            "visibleRange": self.visible_range.to_dict() if self.visible_range else None,
            "width": self.size[0],
            "height": self.size[1],
        }


class SnapshotSurfaceHost:
    """Keeps panel elements in mount order and hands out SnapshotSurfaces."""

    def __init__(self):
        self._elements: List[PanelElement] = []
        self.surfaces: Dict[str, SnapshotSurface] = {}

    def mount(self, resource_id: str, width: int, height: int) -> PanelElement:
        element = PanelElement(resource_id=resource_id, width=width, height=height)
        self._elements.append(element)
        return element

    def create_surface(self, element: PanelElement) -> SnapshotSurface:
        surface = SnapshotSurface(element)
        self.surfaces[element.resource_id] = surface
        return surface

    def unmount(self, element: PanelElement) -> None:
        if element in self._elements:
            self._elements.remove(element)
        else:
            logger.debug(f"Element for {element.resource_id} already unmounted")
        surface = self.surfaces.get(element.resource_id)
        if surface is not None and surface.element is element:
            del self.surfaces[element.resource_id]

    def elements(self) -> List[PanelElement]:
        return list(self._elements)
