"""
Rendering surface interfaces.

A SurfaceHost owns the panel elements a grid is laid out in; each element
gets one RenderingSurface that draws candles, a swing overlay line and a
status caption. Chart resources talk to surfaces only through these
protocols.
"""

from dataclasses import dataclass, field
from typing import (
    Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable,
)

from ..swing_analysis.types import Candle

DimensionCallback = Callable[[int, int], None]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class VisibleRange:
    """Visible time range of a surface, in chart seconds."""
    start: float
    end: float

    def to_dict(self) -> Dict[str, float]:
        return {"from": self.start, "to": self.end}


@dataclass(eq=False)
class PanelElement:
    """
    Host-side container for one resource's surface.

    resource_id is embedded so the host can find an element again without
    the registry's bookkeeping.
    """
    resource_id: str
    width: int
    height: int
    attrs: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class RenderingSurface(Protocol):
    """Drawing target for one chart resource."""

    def set_candle_data(self, candles: Sequence[Candle]) -> None:
        ...

    def set_line_data(self, points: Sequence[Dict[str, float]]) -> None:
        ...

    def resize(self, width: int, height: int) -> None:
        ...

    def fit_visible_range(self) -> None:
        ...

    def get_visible_range(self) -> Optional[VisibleRange]:
        ...

    def set_visible_range(self, visible: VisibleRange) -> None:
        ...

    def container_size(self) -> Optional[Tuple[int, int]]:
        ...

    def set_status(self, text: str, failed: bool = False) -> None:
        ...

    def on_dimension_change(self, callback: DimensionCallback) -> Unsubscribe:
        ...

    def release(self) -> None:
        ...


@runtime_checkable
class SurfaceHost(Protocol):
    """Creates and removes panel elements and their surfaces."""

    def mount(self, resource_id: str, width: int, height: int) -> PanelElement:
        ...

    def create_surface(self, element: PanelElement) -> RenderingSurface:
        ...

    def unmount(self, element: PanelElement) -> None:
        ...

    def elements(self) -> List[PanelElement]:
        ...
