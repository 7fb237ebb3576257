"""
Volume histogram aggregation.

Trades are binned onto a fixed price grid anchored at the lowest price. Each
trade goes to the nearest grid level; exact midpoints round half-up (towards
the higher level), which is the single tie-break used everywhere in this
module.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .types import (
    PriceLevelBin,
    Trade,
    TradeSide,
    ValueArea,
    VolumeProfile,
    VolumeProfileMetrics,
)

logger = logging.getLogger(__name__)

DEFAULT_PRICE_LEVELS = 50
DEFAULT_PROFILE_WIDTH = 10
VALUE_AREA_PERCENTAGE = 0.7


def _grid_indices(prices: np.ndarray, minimum: float, tick_size: float) -> np.ndarray:
    """Nearest grid index for each price, rounding exact midpoints up."""
    return np.floor((prices - minimum) / tick_size + 0.5).astype(np.int64)


def aggregate(
    trades: Sequence[Trade],
    price_level_count: int,
    tick_size: Optional[float] = None,
    price_range: Optional[Tuple[float, float]] = None,
) -> List[PriceLevelBin]:
    """
    Aggregate trades into occupied price-level bins.

    Args:
        trades: Trades to aggregate.
        price_level_count: Number of equal-width levels spanning the price
            range. Ignored for the width when tick_size is given.
        tick_size: Fixed level width overriding the computed one.
        price_range: Optional (min, max) grid bounds. Trades outside the
            bounds are ignored.

    Returns:
        Bins with non-zero volume, ascending by price.

    Raises:
        ValueError: If price_level_count < 1 or tick_size <= 0.
    """
    if price_level_count < 1:
        raise ValueError(f"price_level_count must be >= 1, got {price_level_count}")
    if tick_size is not None and tick_size <= 0:
        raise ValueError(f"tick_size must be positive, got {tick_size}")
    if not trades:
        return []

    prices = np.array([t.price for t in trades], dtype=float)
    volumes = np.array([t.volume for t in trades], dtype=float)
    is_buy = np.array([t.side is TradeSide.BUY for t in trades], dtype=bool)
    is_maker = np.array([t.is_maker for t in trades], dtype=bool)

    if price_range is not None:
        minimum, maximum = price_range
        inside = (prices >= minimum) & (prices <= maximum)
        prices, volumes, is_buy, is_maker = prices[inside], volumes[inside], is_buy[inside], is_maker[inside]
        if prices.size == 0:
            return []
    else:
        minimum, maximum = float(prices.min()), float(prices.max())

    if tick_size is None:
        tick_size = (maximum - minimum) / price_level_count

    if tick_size == 0:
        # Every trade printed at the same price
        indices = np.zeros(prices.size, dtype=np.int64)
    else:
        indices = _grid_indices(prices, minimum, tick_size)

    # Compact to occupied grid steps; the span can be far larger than the trade count
    occupied, slots = np.unique(indices, return_inverse=True)
    slots = slots.reshape(-1)
    size = occupied.size
    total = np.bincount(slots, weights=volumes, minlength=size)
    buy = np.bincount(slots, weights=np.where(is_buy, volumes, 0.0), minlength=size)
    maker = np.bincount(slots, weights=np.where(is_maker, volumes, 0.0), minlength=size)
    counts = np.bincount(slots, minlength=size)

    bins = []
    for slot in np.flatnonzero(total > 0):
        bins.append(PriceLevelBin(
            price=minimum + int(occupied[slot]) * tick_size,
            total_volume=float(total[slot]),
            buy_volume=float(buy[slot]),
            sell_volume=float(total[slot] - buy[slot]),
            maker_volume=float(maker[slot]),
            taker_volume=float(total[slot] - maker[slot]),
            trade_count=int(counts[slot]),
        ))
    return bins


def point_of_control(bins: Sequence[PriceLevelBin]) -> Optional[float]:
    """Price of the bin with the highest volume (first one on ties), or None."""
    if not bins:
        return None
    best = bins[0]
    for b in bins[1:]:
        if b.total_volume > best.total_volume:
            best = b
    return best.price


def value_area(
    bins: Sequence[PriceLevelBin],
    target_fraction: float = VALUE_AREA_PERCENTAGE,
) -> Optional[ValueArea]:
    """
    Contiguous price range around the POC holding target_fraction of volume.

    Expansion starts at the POC bin and repeatedly takes whichever adjacent
    bin (below or above the current range) has more volume; ties go to the
    higher side. Stops once the target is reached or both sides are
    exhausted.

    Args:
        bins: Bins ascending by price.
        target_fraction: Share of total volume to enclose (0-1].

    Returns:
        ValueArea bounds, or None for empty input.
    """
    if not bins:
        return None
    if not 0 < target_fraction <= 1:
        raise ValueError(f"target_fraction must be in (0, 1], got {target_fraction}")

    volumes = [b.total_volume for b in bins]
    target = sum(volumes) * target_fraction

    poc_index = 0
    for i, vol in enumerate(volumes):
        if vol > volumes[poc_index]:
            poc_index = i

    low = high = poc_index
    accumulated = volumes[poc_index]

    while accumulated < target:
        can_low = low > 0
        can_high = high < len(bins) - 1
        if not can_low and not can_high:
            break

        low_volume = volumes[low - 1] if can_low else None
        high_volume = volumes[high + 1] if can_high else None

        if can_low and (not can_high or low_volume > high_volume):
            low -= 1
            accumulated += low_volume
        else:
            high += 1
            accumulated += high_volume

    return ValueArea(low=bins[low].price, high=bins[high].price)


def _sorted_by_time(trades: Iterable[Trade]) -> List[Trade]:
    return sorted(trades, key=lambda t: t.time)


def build_profile(
    trades: Sequence[Trade],
    price_level_count: int = DEFAULT_PRICE_LEVELS,
    tick_size: Optional[float] = None,
    price_range: Optional[Tuple[float, float]] = None,
    width: int = DEFAULT_PROFILE_WIDTH,
) -> VolumeProfile:
    """
    Build one volume profile anchored at the first trade's time.

    Raises:
        ValueError: If trades is empty.
    """
    if not trades:
        raise ValueError("Trade data is empty")

    ordered = _sorted_by_time(trades)
    bins = aggregate(ordered, price_level_count, tick_size=tick_size, price_range=price_range)
    return VolumeProfile(time=ordered[0].time // 1000, bins=bins, width=width)


def split_by_time_window(trades: Sequence[Trade], window_ms: int) -> List[List[Trade]]:
    """
    Group time-ordered trades into consecutive windows.

    A new window starts at the first trade at least window_ms after the
    current window's first trade.
    """
    if window_ms <= 0:
        raise ValueError(f"window_ms must be positive, got {window_ms}")
    windows: List[List[Trade]] = []
    current: List[Trade] = []
    window_start = None

    for trade in _sorted_by_time(trades):
        if window_start is None:
            window_start = trade.time
        if trade.time - window_start >= window_ms:
            if current:
                windows.append(current)
            current = [trade]
            window_start = trade.time
        else:
            current.append(trade)

    if current:
        windows.append(current)
    return windows


def build_profiles(
    trades: Sequence[Trade],
    window_ms: int,
    price_level_count: int = DEFAULT_PRICE_LEVELS,
    tick_size: Optional[float] = None,
) -> List[VolumeProfile]:
    """One profile per time window; empty input gives no profiles."""
    return [
        build_profile(window, price_level_count, tick_size=tick_size)
        for window in split_by_time_window(trades, window_ms)
    ]


def compute_metrics(
    trades: Sequence[Trade],
    profile: VolumeProfile,
    target_fraction: float = VALUE_AREA_PERCENTAGE,
) -> VolumeProfileMetrics:
    """
    Summary metrics for the trades behind a profile.

    Price change runs from the first to the last trade by time.
    """
    ordered = _sorted_by_time(trades)
    if ordered:
        first_price = ordered[0].price
        current_price = ordered[-1].price
    else:
        first_price = current_price = 0.0

    change = current_price - first_price
    change_percent = (change / first_price * 100) if first_price else 0.0
    area = value_area(profile.bins, target_fraction)

    return VolumeProfileMetrics(
        current_price=current_price,
        price_change=change,
        price_change_percent=change_percent,
        total_trades=len(ordered),
        total_volume=sum(t.volume for t in ordered),
        poc=point_of_control(profile.bins),
        value_area_high=area.high if area else None,
        value_area_low=area.low if area else None,
    )
