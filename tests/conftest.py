"""
Shared test fixtures and helpers for chart grid and volume profile tests.
"""

import asyncio
from typing import List, Optional, Sequence, Union

import pytest

from src.chart_grid.config import GridConfig, RetryPolicy
from src.chart_grid.persistence import InMemoryStore
from src.chart_grid.surfaces import SnapshotSurfaceHost
from src.swing_analysis.types import Candle
from src.volume_profile.types import Trade, TradeSide


def make_candle(
    index: int,
    open_: float,
    high: float,
    low: float,
    close: float,
    time: int = None,
    volume: float = 0.0,
) -> Candle:
    """Helper to create Candle objects for testing.

    Args:
        index: Position in the series
        open_: Opening price
        high: High price
        low: Low price
        close: Closing price
        time: Unix timestamp (defaults to 1700000000 + index * 60)

    Returns:
        Candle for use in detector and resource tests
    """
    return Candle(
        time=time if time is not None else 1700000000 + index * 60,
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=volume,
    )


def make_series(highs: Sequence[float], lows: Sequence[float]) -> List[Candle]:
    """Candles from parallel high/low lists; open at the low, close at the high."""
    return [make_candle(i, lo, hi, lo, hi) for i, (hi, lo) in enumerate(zip(highs, lows))]


def make_trade(price: float, volume: float, side: str = "buy", time: int = 0,
               is_maker: bool = False) -> Trade:
    return Trade(time=time, price=price, volume=volume, side=TradeSide.parse(side), is_maker=is_maker)


def flat_series(count: int = 20, start: float = 100.0) -> List[Candle]:
    """Gently rising candles with no swing structure."""
    return [
        make_candle(i, start + i, start + i + 1, start + i - 1, start + i + 0.5)
        for i in range(count)
    ]


Step = Union[List[Candle], Exception, asyncio.Event]


class ScriptedSource:
    """
    MarketDataSource fake returning scripted results in order.

    Each script entry is a candle list (returned), an Exception (raised) or
    an asyncio.Event (the fetch blocks until it is set, then the next entry
    is consumed). When the script runs out, `default` is returned.
    """

    def __init__(self, script: Optional[List[Step]] = None, default: Optional[List[Candle]] = None,
                 trades: Optional[List[Trade]] = None):
        self.script = list(script or [])
        self.default = default if default is not None else flat_series()
        self.trades = list(trades or [])
        self.calls: List[tuple] = []

    async def fetch_candles(self, interval: str, limit: int) -> List[Candle]:
        self.calls.append((interval, limit))
        while self.script:
            step = self.script.pop(0)
            if isinstance(step, asyncio.Event):
                await step.wait()
                continue
            if isinstance(step, Exception):
                raise step
            return step
        return self.default

    async def fetch_trades(self, limit: int) -> List[Trade]:
        return self.trades[-limit:]


class GatedSource:
    """Source whose fetches stay pending until the test resolves them."""

    def __init__(self):
        self.pending: List[asyncio.Future] = []

    async def fetch_candles(self, interval: str, limit: int) -> List[Candle]:
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    async def fetch_trades(self, limit: int) -> List[Trade]:
        return []

    def resolve_all(self, candles: List[Candle]) -> None:
        for future in self.pending:
            if not future.done():
                future.set_result(candles)


@pytest.fixture
def fast_config() -> GridConfig:
    """Grid config with millisecond timings."""
    return GridConfig(
        layout_settle_delay=0.0,
        resize_debounce=0.005,
        persist_debounce=0.01,
        retry=RetryPolicy(base_delay=0.001, max_delay=0.004, max_retries=3),
    )


@pytest.fixture
def host() -> SnapshotSurfaceHost:
    return SnapshotSurfaceHost()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()
