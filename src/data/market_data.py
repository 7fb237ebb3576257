"""
Market data source interface and the file-backed implementation.

Anything that can serve candles for an interval and recent trades satisfies
MarketDataSource; chart resources and the live profile feed depend only on
this protocol.
"""

import asyncio
import logging
from typing import AsyncIterator, List, Optional, Protocol, Sequence, runtime_checkable

import pandas as pd

from ..swing_analysis.types import Candle
from ..volume_profile.types import Trade
from .ohlc_loader import dataframe_to_candles, load_ohlc, resample_ohlc

logger = logging.getLogger(__name__)


class DataFetchError(Exception):
    """Network, HTTP or parse failure while fetching market data."""


@runtime_checkable
class MarketDataSource(Protocol):
    """Source of candles and trades."""

    async def fetch_candles(self, interval: str, limit: int) -> List[Candle]:
        ...

    async def fetch_trades(self, limit: int) -> List[Trade]:
        ...


@runtime_checkable
class TradeStream(Protocol):
    """Optional streaming capability: one trade at a time."""

    def stream_trades(self) -> AsyncIterator[Trade]:
        ...


class FileMarketDataSource:
    """
    Serves candles from a local OHLC CSV file.

    The file is loaded once (lazily) at its native resolution and resampled
    per requested interval. Trades are not available from OHLC files.
    """

    def __init__(self, filepath: str):
        self.filepath = filepath
        self._frame: Optional[pd.DataFrame] = None
        self._lock = asyncio.Lock()

    async def _load(self) -> pd.DataFrame:
        async with self._lock:
            if self._frame is None:
                try:
                    self._frame = await asyncio.to_thread(load_ohlc, self.filepath)
                except (FileNotFoundError, ValueError) as e:
                    raise DataFetchError(f"Could not load {self.filepath}: {e}") from e
                logger.info(f"Loaded {len(self._frame)} bars from {self.filepath}")
        return self._frame

    async def fetch_candles(self, interval: str, limit: int) -> List[Candle]:
        frame = await self._load()
        try:
            resampled = resample_ohlc(frame, interval)
        except ValueError as e:
            raise DataFetchError(str(e)) from e
        return dataframe_to_candles(resampled.tail(limit))

    async def fetch_trades(self, limit: int) -> List[Trade]:
        raise DataFetchError(f"{self.filepath} holds OHLC bars only; no trades available")


class StaticMarketDataSource:
    """In-memory source returning fixed candles/trades, for demos and offline use."""

    def __init__(self, candles: Sequence[Candle] = (), trades: Sequence[Trade] = ()):
        self.candles = list(candles)
        self.trades = list(trades)

    async def fetch_candles(self, interval: str, limit: int) -> List[Candle]:
        return self.candles[-limit:] if limit else []

    async def fetch_trades(self, limit: int) -> List[Trade]:
        return self.trades[-limit:] if limit else []
