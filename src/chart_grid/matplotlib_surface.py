"""
Matplotlib Rendering Surface

Draws one chart resource into its own matplotlib Figure: candlestick bodies
as rectangles with wick lines, the swing overlay as a line through the
swing points, and a status caption in the corner. Figures are rendered
off-screen with the Agg canvas, so no display is required.
"""

import io
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.patches import Rectangle

from ..swing_analysis.types import Candle
from .rendering import DimensionCallback, PanelElement, Unsubscribe, VisibleRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChartStyle:
    """Colors and sizing for figure-backed surfaces."""
    bullish_color: str = "#26A69A"
    bearish_color: str = "#EF5350"
    background_color: str = "#1E1E1E"
    grid_color: str = "#333333"
    text_color: str = "#FFFFFF"
    swing_line_color: str = "#FFD700"
    failure_color: str = "#FF4444"
    body_width: float = 0.6  # Fraction of the candle spacing
    dpi: int = 100


class MatplotlibSurface:
    """RenderingSurface backed by a matplotlib Figure."""

    def __init__(self, element: PanelElement, style: Optional[ChartStyle] = None):
        self.element = element
        self.style = style or ChartStyle()
        self.fig = Figure(
            figsize=(element.width / self.style.dpi, element.height / self.style.dpi),
            dpi=self.style.dpi,
        )
        self.canvas = FigureCanvasAgg(self.fig)
        self.ax = self.fig.add_subplot(1, 1, 1)
        self._configure_appearance()

        self._candles: List[Candle] = []
        self._candle_artists: list = []
        self._line_artist = None
        self._status_text = None
        self._spacing = 1.0
        self._connections: Dict[int, DimensionCallback] = {}
        self.released = False

    def _configure_appearance(self) -> None:
        self.fig.set_facecolor(self.style.background_color)
        self.ax.set_facecolor(self.style.background_color)
        self.ax.grid(True, color=self.style.grid_color, alpha=0.3)
        self.ax.tick_params(colors=self.style.text_color)
        self.ax.set_title(self.element.resource_id, color=self.style.text_color, fontsize=10)

    def _clear_candles(self) -> None:
        for artist in self._candle_artists:
            artist.remove()
        self._candle_artists = []

    def set_candle_data(self, candles: Sequence[Candle]) -> None:
        """Draw OHLC candlesticks at their timestamps."""
        self._clear_candles()
        self._candles = list(candles)
        if not self._candles:
            return

        if len(self._candles) > 1:
            gaps = [b.time - a.time for a, b in zip(self._candles, self._candles[1:]) if b.time > a.time]
            self._spacing = float(min(gaps)) if gaps else 1.0
        half_body = self._spacing * self.style.body_width / 2

        for candle in self._candles:
            color = self.style.bullish_color if candle.close >= candle.open else self.style.bearish_color
            body_bottom = min(candle.open, candle.close)
            body_top = max(candle.open, candle.close)

            body = Rectangle(
                (candle.time - half_body, body_bottom),
                half_body * 2, body_top - body_bottom,
                facecolor=color,
                edgecolor=color,
                linewidth=1.0,
                alpha=0.8
            )
            self.ax.add_patch(body)
            self._candle_artists.append(body)

            if candle.high > body_top:
                self._candle_artists.append(
                    self.ax.plot([candle.time, candle.time], [body_top, candle.high], color=color, linewidth=1.0)[0]
                )
            if candle.low < body_bottom:
                self._candle_artists.append(
                    self.ax.plot([candle.time, candle.time], [candle.low, body_bottom], color=color, linewidth=1.0)[0]
                )

    def set_line_data(self, points: Sequence[Dict[str, float]]) -> None:
        if self._line_artist is not None:
            self._line_artist.remove()
            self._line_artist = None
        if not points:
            return
        self._line_artist = self.ax.plot(
            [p["time"] for p in points],
            [p["value"] for p in points],
            color=self.style.swing_line_color,
            linewidth=1.5,
        )[0]

    def resize(self, width: int, height: int) -> None:
        self.fig.set_size_inches(width / self.style.dpi, height / self.style.dpi)

    def fit_visible_range(self) -> None:
        if not self._candles:
            return
        half = self._spacing / 2
        self.ax.set_xlim(self._candles[0].time - half, self._candles[-1].time + half)
        low = min(c.low for c in self._candles)
        high = max(c.high for c in self._candles)
        margin = (high - low) * 0.05 or 1.0
        self.ax.set_ylim(low - margin, high + margin)

    def get_visible_range(self) -> Optional[VisibleRange]:
        if not self._candles:
            return None
        start, end = self.ax.get_xlim()
        return VisibleRange(start, end)

    def set_visible_range(self, visible: VisibleRange) -> None:
        self.ax.set_xlim(visible.start, visible.end)

    def container_size(self) -> Optional[Tuple[int, int]]:
        width, height = self.fig.get_size_inches() * self.fig.dpi
        return (int(round(width)), int(round(height)))

    def set_status(self, text: str, failed: bool = False) -> None:
        """Caption in the top-left corner; failures stay red until replaced."""
        color = self.style.failure_color if failed else self.style.swing_line_color
        if self._status_text is None:
            self._status_text = self.fig.text(
                0.02, 0.98, text,
                transform=self.fig.transFigure,
                fontsize=10,
                verticalalignment='top',
                horizontalalignment='left',
                color=color,
                fontweight='bold',
                bbox=dict(
                    boxstyle='round,pad=0.3',
                    facecolor=self.style.background_color,
                    edgecolor=color,
                    alpha=0.9
                )
            )
        else:
            self._status_text.set_text(text)
            self._status_text.set_color(color)
            self._status_text.get_bbox_patch().set_edgecolor(color)

    def on_dimension_change(self, callback: DimensionCallback) -> Unsubscribe:
        def handler(event) -> None:
            callback(int(event.width), int(event.height))

        cid = self.canvas.mpl_connect('resize_event', handler)
        self._connections[cid] = callback

        def unsubscribe() -> None:
            if self._connections.pop(cid, None) is not None:
                self.canvas.mpl_disconnect(cid)

        return unsubscribe

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self.fig.savefig(buffer, format='png', facecolor=self.fig.get_facecolor())
        return buffer.getvalue()

    def release(self) -> None:
        if self.released:
            return
        for cid in list(self._connections):
            self.canvas.mpl_disconnect(cid)
        self._connections.clear()
        self.fig.clear()
        self.released = True


class MatplotlibSurfaceHost:
    """SurfaceHost handing out one figure-backed surface per panel element."""

    def __init__(self, style: Optional[ChartStyle] = None):
        self.style = style or ChartStyle()
        self._elements: List[PanelElement] = []

    def mount(self, resource_id: str, width: int, height: int) -> PanelElement:
        element = PanelElement(resource_id=resource_id, width=width, height=height)
        self._elements.append(element)
        return element

    def create_surface(self, element: PanelElement) -> MatplotlibSurface:
        surface = MatplotlibSurface(element, self.style)
        element.attrs["surface"] = surface
        return surface

    def unmount(self, element: PanelElement) -> None:
        if element in self._elements:
            self._elements.remove(element)
        element.attrs.pop("surface", None)

    def elements(self) -> List[PanelElement]:
        return list(self._elements)
