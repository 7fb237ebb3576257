"""
Swing point detection and HH/LH/HL/LL classification.

A candle is a swing high when its high is strictly above every other high in
the window ``[i - comparison_window, i + forward_window]``; a swing low is the
mirror image using lows. Highs and lows are classified against the previous
swing on the same side only.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .swing_config import SwingConfig
from .types import Candle, SwingClassification, SwingPoint

logger = logging.getLogger(__name__)


def _is_strict_max(values: np.ndarray, index: int, start: int, end: int) -> bool:
    """True if values[index] is greater than every other value in [start, end]."""
    window = values[start:end + 1]
    others = np.delete(window, index - start)
    return bool(np.all(others < values[index]))


def _is_strict_min(values: np.ndarray, index: int, start: int, end: int) -> bool:
    """True if values[index] is less than every other value in [start, end]."""
    window = values[start:end + 1]
    others = np.delete(window, index - start)
    return bool(np.all(others > values[index]))


def _scan_range(length: int, comparison_window: int, analysis_window: int,
                forward_window: int) -> range:
    """
    Indices eligible for swing detection.

    Candles before ``comparison_window`` or in the last ``forward_window``
    positions lack a full window on one side and are never candidates.
    """
    analyze = min(analysis_window, length)
    start = max(comparison_window, length - analyze)
    return range(start, length - forward_window)


def detect_swings(
    candles: Sequence[Candle],
    comparison_window: int,
    analysis_window: int,
    forward_window: int,
) -> List[SwingPoint]:
    """
    Detect and classify swing points over the most recent candles.

    Args:
        candles: Candles in ascending time order.
        comparison_window: Candles checked before each candidate.
        analysis_window: Only the last N candles are scanned.
        forward_window: Candles checked after each candidate.

    Returns:
        Swing points in ascending index order. When one candle is both a
        swing high and a swing low, only the high is kept (duplicate
        timestamps are dropped, first occurrence wins).

    Raises:
        ValueError: If a window is negative or analysis_window < 1.
    """
    config = SwingConfig(
        comparison_window=comparison_window,
        forward_window=forward_window,
        analysis_window=analysis_window,
    )
    return detect_swings_with_config(candles, config)


def detect_swings_with_config(candles: Sequence[Candle], config: SwingConfig) -> List[SwingPoint]:
    """Same as detect_swings, taking a SwingConfig."""
    length = len(candles)
    if length < config.min_candles:
        return []

    highs = np.fromiter((c.high for c in candles), dtype=float, count=length)
    lows = np.fromiter((c.low for c in candles), dtype=float, count=length)

    points: List[SwingPoint] = []
    previous_high: Optional[float] = None
    previous_low: Optional[float] = None

    for i in _scan_range(length, config.comparison_window, config.analysis_window,
                         config.forward_window):
        start = i - config.comparison_window
        end = i + config.forward_window

        if _is_strict_max(highs, i, start, end):
            price = float(highs[i])
            if previous_high is None or price > previous_high:
                classification = SwingClassification.HH
            else:
                classification = SwingClassification.LH
            points.append(SwingPoint(
                price=price,
                time=candles[i].time,
                classification=classification,
                source_index=i,
                is_high=True,
            ))
            previous_high = price

        if _is_strict_min(lows, i, start, end):
            price = float(lows[i])
            if previous_low is None or price > previous_low:
                classification = SwingClassification.HL
            else:
                classification = SwingClassification.LL
            points.append(SwingPoint(
                price=price,
                time=candles[i].time,
                classification=classification,
                source_index=i,
                is_high=False,
            ))
            previous_low = price

    return _drop_duplicate_times(points)


def _drop_duplicate_times(points: List[SwingPoint]) -> List[SwingPoint]:
    """Keep the first point for each timestamp."""
    seen = set()
    unique = []
    for point in points:
        if point.time in seen:
            continue
        seen.add(point.time)
        unique.append(point)
    if len(unique) != len(points):
        logger.debug(f"Dropped {len(points) - len(unique)} swing point(s) sharing a timestamp")
    return unique


def swing_line(points: Sequence[SwingPoint]) -> List[dict]:
    """Line-series payload (time/value pairs) for the swing overlay."""
    return [{"time": p.time, "value": p.price} for p in points]
