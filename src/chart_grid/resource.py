"""
Chart Resource

One chart panel bound to a timeframe, a rendering surface and a market data
source. The resource owns the load/retry cycle and the swing overlay for its
candles; the registry owns creation, placement and removal.

Lifecycle:

    INITIALIZING -> LOADING -> READY
                       |  ^
                       v  |  (backoff elapsed, retry_count += 1)
                     RETRYING
                       |
                       v  (retries exhausted)
                     FAILED

    READY/FAILED -> LOADING on timeframe change (retry_count reset)
    any -> DESTROYED (terminal)

Every load bumps a generation counter. A completion whose generation is no
longer current, or that arrives after destroy(), is dropped without touching
the surface.
"""

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..swing_analysis.swing_detector import detect_swings_with_config, swing_line
from ..swing_analysis.types import Candle, SwingPoint
from .config import AnalysisSettings, RetryPolicy
from .constants import TimeframeSpec
from .errors import DataFetchError, StaleOperationError
from .rendering import RenderingSurface

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    INITIALIZING = "initializing"
    LOADING = "loading"
    READY = "ready"
    RETRYING = "retrying"
    FAILED = "failed"
    DESTROYED = "destroyed"


def format_price_change(candles: Sequence[Candle]) -> str:
    """Signed close-minus-open over the whole series, e.g. '+12.34'."""
    change = candles[-1].close - candles[0].open
    return f"{change:+.2f}"


class ChartResource:
    """
    A single chart panel.

    Args:
        resource_id: Registry id ("chart-3").
        timeframe: Catalog entry to load.
        surface: Rendering surface bound to this resource. Released last on
            destroy().
        source: MarketDataSource providing candles.
        settings: Initial analysis settings.
        retry: Backoff policy for failed loads.
        width / height: Initial size.
    """

    def __init__(
        self,
        resource_id: str,
        timeframe: TimeframeSpec,
        surface: RenderingSurface,
        source,
        settings: Optional[AnalysisSettings] = None,
        retry: Optional[RetryPolicy] = None,
        width: int = 600,
        height: int = 400,
    ):
        self.resource_id = resource_id
        self.timeframe = timeframe
        self.surface = surface
        self.source = source
        self.settings = settings or AnalysisSettings()
        self.retry = retry or RetryPolicy()
        self.width = width
        self.height = height

        self.state = LifecycleState.INITIALIZING
        self.retry_count = 0
        self.last_error: Optional[Exception] = None
        self.destroyed = False
        self.candles: List[Candle] = []
        self.swing_points: List[SwingPoint] = []
        self.status_text = ""
        self.status_failed = False

        self._generation = 0
        self._has_loaded = False
        self._wake = asyncio.Event()

        # LIFO: the surface binding registered first is released last
        self._disposables = contextlib.ExitStack()
        self._disposables.callback(surface.release)

    def __repr__(self) -> str:
        return f"ChartResource({self.resource_id!r}, {self.timeframe.id!r}, {self.state.value})"

    def add_disposer(self, callback, *args: Any) -> None:
        """Run callback(*args) on destroy(), before the surface is released."""
        self._disposables.callback(callback, *args)

    def _set_state(self, state: LifecycleState) -> None:
        if self.destroyed:
            return
        self.state = state

    def _invalidate(self) -> int:
        """Start a new generation and wake any backoff of the previous one."""
        self._generation += 1
        self._wake.set()
        self._wake = asyncio.Event()
        return self._generation

    def _ensure_current(self, generation: int) -> None:
        if self.destroyed or generation != self._generation:
            raise StaleOperationError(
                f"{self.resource_id}: generation {generation} superseded"
            )

    async def _backoff(self, delay: float, wake: asyncio.Event) -> None:
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(wake.wait(), timeout=delay)

    async def load(self, fit: Optional[bool] = None) -> bool:
        """
        Fetch candles and render them, retrying with backoff on failure.

        Args:
            fit: Fit the visible range to the data. Defaults to fitting only
                on the first successful load.

        Returns:
            True once the data is rendered. False when retries are exhausted
            (state FAILED) or when this load was superseded or destroyed.
        """
        if self.destroyed:
            return False

        generation = self._invalidate()
        wake = self._wake
        should_fit = (not self._has_loaded) if fit is None else fit
        self.retry_count = 0

        try:
            while True:
                self._set_state(LifecycleState.LOADING)
                try:
                    candles = await self.source.fetch_candles(
                        self.timeframe.interval, self.timeframe.candle_limit
                    )
                    self._ensure_current(generation)
                    if not candles:
                        raise DataFetchError("No data received")
                except StaleOperationError:
                    raise
                except Exception as e:
                    self._ensure_current(generation)
                    self.last_error = e
                    if self.retry_count >= self.retry.max_retries:
                        self._fail(e)
                        return False

                    delay = self.retry.delay_for(self.retry_count)
                    self._set_state(LifecycleState.RETRYING)
                    logger.warning(
                        f"Error loading {self.timeframe.label} data for {self.resource_id} "
                        f"(attempt {self.retry_count + 1}/{self.retry.max_retries + 1}): {e}; "
                        f"retrying in {delay:.2f}s"
                    )
                    await self._backoff(delay, wake)
                    self._ensure_current(generation)
                    self.retry_count += 1
                    continue

                self._apply_candles(candles, should_fit)
                return True
        except StaleOperationError as e:
            logger.debug(f"Discarding stale load: {e}")
            return False

    def _fail(self, error: Exception) -> None:
        self._set_state(LifecycleState.FAILED)
        logger.error(
            f"Failed to load {self.timeframe.label} data for {self.resource_id} "
            f"after {self.retry_count} retries: {error}"
        )
        self._show_status(f"Error: {error}", failed=True)

    def _show_status(self, text: str, failed: bool = False) -> None:
        self.status_text = text
        self.status_failed = failed
        self.surface.set_status(text, failed=failed)

    def _apply_candles(self, candles: Sequence[Candle], fit: bool) -> None:
        preserved = None if fit else self.surface.get_visible_range()

        self.candles = list(candles)
        self.surface.set_candle_data(self.candles)
        self._draw_swings()
        self._show_status(format_price_change(self.candles))

        if fit:
            self.surface.fit_visible_range()
        elif preserved is not None:
            self.surface.set_visible_range(preserved)

        self.retry_count = 0
        self.last_error = None
        self._has_loaded = True
        self._set_state(LifecycleState.READY)

    def _draw_swings(self) -> None:
        if self.settings.swing_enabled:
            self.swing_points = detect_swings_with_config(self.candles, self.settings.swing_config)
        else:
            self.swing_points = []
        self.surface.set_line_data(swing_line(self.swing_points))

    def apply_settings(self, settings: AnalysisSettings) -> None:
        """Re-run swing analysis on the cached candles, keeping the viewport."""
        if self.destroyed:
            return
        self.settings = settings
        if not self.candles:
            return
        visible = self.surface.get_visible_range()
        self._draw_swings()
        if visible is not None:
            self.surface.set_visible_range(visible)

    async def reconfigure(
        self,
        timeframe: Optional[TimeframeSpec] = None,
        settings: Optional[AnalysisSettings] = None,
    ) -> bool:
        """
        Change timeframe and/or analysis settings.

        A new timeframe invalidates any in-flight load and reloads with a
        re-fit. Settings alone only redraw the overlay from cached candles.
        """
        if self.destroyed:
            return False

        if timeframe is not None and timeframe != self.timeframe:
            if settings is not None:
                self.settings = settings
            self.timeframe = timeframe
            self.retry_count = 0
            return await self.load(fit=True)

        if settings is not None:
            self.apply_settings(settings)
        return True

    def resize(self, width: int, height: int) -> None:
        if self.destroyed or width <= 0 or height <= 0:
            return
        if (width, height) == (self.width, self.height):
            return
        self.width = width
        self.height = height
        self.surface.resize(width, height)

    def adjust_to_container(self) -> None:
        """Match the surface to the size its host actually laid out."""
        if self.destroyed:
            return
        size = self.surface.container_size()
        if size is not None:
            self.resize(*size)

    def fit(self) -> None:
        if not self.destroyed and self.candles:
            self.surface.fit_visible_range()

    def destroy(self) -> None:
        """Release everything this resource holds. Safe to call repeatedly."""
        if self.destroyed:
            return
        self.destroyed = True
        self.state = LifecycleState.DESTROYED
        self._invalidate()
        self._disposables.close()
        logger.debug(f"Destroyed {self.resource_id}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.resource_id,
            "timeframe_id": self.timeframe.id,
            "label": self.timeframe.label,
            "width": self.width,
            "height": self.height,
            "state": self.state.value,
            "retry_count": self.retry_count,
            "status": self.status_text,
            "failed": self.status_failed,
            "last_error": str(self.last_error) if self.last_error else None,
        }
