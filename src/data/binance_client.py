"""
Binance public market data client.

REST calls go through a shared httpx.AsyncClient; live trades come from the
`<symbol>@trade` websocket stream. Every transport, HTTP-status or payload
problem is raised as DataFetchError so callers handle a single failure type.
"""

import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
import websockets

from ..swing_analysis.types import Candle
from ..volume_profile.types import Trade, TradeSide
from .market_data import DataFetchError
from .ohlc_loader import dataframe_to_candles, klines_to_dataframe

logger = logging.getLogger(__name__)

BASE_URL = "https://api.binance.com"
WS_BASE_URL = "wss://stream.binance.com:9443"
MAX_TRADES_PER_REQUEST = 1000
MAX_HISTORICAL_TRADES = 5000
PAGE_PAUSE_SECONDS = 0.1


def _side_from_maker(is_buyer_maker: bool) -> TradeSide:
    # Buyer as maker means the seller was the aggressor
    return TradeSide.SELL if is_buyer_maker else TradeSide.BUY


def parse_trade(raw: Dict[str, Any]) -> Trade:
    """Convert a /api/v3/trades entry."""
    return Trade(
        time=int(raw["time"]),
        price=float(raw["price"]),
        volume=float(raw["qty"]),
        side=_side_from_maker(raw["isBuyerMaker"]),
        is_maker=bool(raw["isBuyerMaker"]),
    )


def parse_agg_trade(raw: Dict[str, Any]) -> Trade:
    """Convert an /api/v3/aggTrades entry or a websocket trade event."""
    return Trade(
        time=int(raw["T"]),
        price=float(raw["p"]),
        volume=float(raw["q"]),
        side=_side_from_maker(raw["m"]),
        is_maker=bool(raw["m"]),
    )


class BinanceClient:
    """
    Thin async client for Binance spot market data.

    Implements MarketDataSource (candles and trades) and the optional trade
    stream. The httpx.AsyncClient may be injected (tests pass one built on
    httpx.MockTransport); otherwise one is created and owned by this client.
    """

    KLINES_PATH = "/api/v3/klines"
    TRADES_PATH = "/api/v3/trades"
    AGG_TRADES_PATH = "/api/v3/aggTrades"
    PRICE_PATH = "/api/v3/ticker/price"
    STATS_PATH = "/api/v3/ticker/24hr"

    def __init__(
        self,
        symbol: str = "BTCUSDT",
        base_url: str = BASE_URL,
        ws_base_url: str = WS_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.symbol = symbol.upper()
        self.ws_base_url = ws_base_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "BinanceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a JSON payload, translating every failure into DataFetchError."""
        try:
            response = await self.client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise DataFetchError(
                f"Binance API error: {e.response.status_code} {e.response.reason_phrase} ({path})"
            ) from e
        except httpx.HTTPError as e:
            raise DataFetchError(f"Request to {path} failed: {e}") from e
        except ValueError as e:
            raise DataFetchError(f"Invalid JSON from {path}: {e}") from e

    async def fetch_candles(self, interval: str, limit: int) -> List[Candle]:
        payload = await self._get(self.KLINES_PATH, {
            "symbol": self.symbol,
            "interval": interval,
            "limit": limit,
        })
        try:
            frame = klines_to_dataframe(payload)
        except ValueError as e:
            raise DataFetchError(str(e)) from e
        return dataframe_to_candles(frame)

    async def fetch_trades(self, limit: int = MAX_TRADES_PER_REQUEST) -> List[Trade]:
        """Most recent trades (capped at 1000 by the exchange)."""
        payload = await self._get(self.TRADES_PATH, {
            "symbol": self.symbol,
            "limit": min(limit, MAX_TRADES_PER_REQUEST),
        })
        try:
            return [parse_trade(raw) for raw in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise DataFetchError(f"Malformed trades payload: {e}") from e

    async def fetch_agg_trades(
        self,
        limit: int = MAX_TRADES_PER_REQUEST,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
    ) -> List[Trade]:
        params: Dict[str, Any] = {
            "symbol": self.symbol,
            "limit": min(limit, MAX_TRADES_PER_REQUEST),
        }
        if start_time is not None:
            params["startTime"] = start_time
        if end_time is not None:
            params["endTime"] = end_time
        payload = await self._get(self.AGG_TRADES_PATH, params)
        try:
            return [parse_agg_trade(raw) for raw in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise DataFetchError(f"Malformed aggTrades payload: {e}") from e

    async def fetch_historical_trades(
        self,
        start_time: int,
        end_time: int,
        max_trades: int = MAX_HISTORICAL_TRADES,
    ) -> List[Trade]:
        """
        Page through aggregate trades in [start_time, end_time] (ms).

        Stops at max_trades, at end_time, or when a page comes back short.
        """
        trades: List[Trade] = []
        cursor = start_time

        while len(trades) < max_trades and cursor < end_time:
            page = await self.fetch_agg_trades(MAX_TRADES_PER_REQUEST, cursor, end_time)
            if not page:
                break
            trades.extend(page)
            cursor = page[-1].time + 1
            if len(page) < MAX_TRADES_PER_REQUEST:
                break
            await asyncio.sleep(PAGE_PAUSE_SECONDS)

        return trades[:max_trades]

    async def fetch_trades_last_hours(self, hours: float, max_trades: int = MAX_HISTORICAL_TRADES) -> List[Trade]:
        end_time = int(time.time() * 1000)
        start_time = end_time - int(hours * 60 * 60 * 1000)
        return await self.fetch_historical_trades(start_time, end_time, max_trades)

    async def get_current_price(self) -> float:
        payload = await self._get(self.PRICE_PATH, {"symbol": self.symbol})
        return float(payload["price"])

    async def get_24h_stats(self) -> Dict[str, float]:
        payload = await self._get(self.STATS_PATH, {"symbol": self.symbol})
        fields = [
            "priceChange", "priceChangePercent", "weightedAvgPrice", "lastPrice",
            "volume", "quoteVolume", "highPrice", "lowPrice", "openPrice",
        ]
        stats = {name: float(payload[name]) for name in fields}
        stats["count"] = int(payload["count"])
        return stats

    async def stream_trades(self) -> AsyncIterator[Trade]:
        """
        Yield live trades from the websocket stream until the consumer stops.

        Malformed messages are logged and skipped; connection failures raise
        DataFetchError.
        """
        url = f"{self.ws_base_url}/ws/{self.symbol.lower()}@trade"
        try:
            async with websockets.connect(url) as ws:
                logger.info(f"Connected to trade stream {url}")
                async for message in ws:
                    try:
                        yield parse_agg_trade(json.loads(message))
                    except (KeyError, TypeError, ValueError) as e:
                        logger.error(f"Error parsing trade message: {e}")
        except (OSError, websockets.exceptions.WebSocketException) as e:
            raise DataFetchError(f"Trade stream {url} failed: {e}") from e
        finally:
            logger.info(f"Trade stream {url} closed")
