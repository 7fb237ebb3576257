"""
Tests for the Binance market data client using httpx.MockTransport.
"""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest

from src.data import binance_client
from src.data.binance_client import BinanceClient, parse_agg_trade, parse_trade
from src.data.market_data import DataFetchError, MarketDataSource, TradeStream
from src.volume_profile.types import TradeSide


def _client(handler) -> BinanceClient:
    transport = httpx.MockTransport(handler)
    http = httpx.AsyncClient(transport=transport, base_url="https://api.test")
    return BinanceClient("btcusdt", client=http)


def _agg(i, time, maker=False):
    return {"a": i, "p": f"{100 + i}.0", "q": "1.5", "T": time, "m": maker}


class TestParsing:

    def test_buyer_maker_is_sell(self):
        trade = parse_trade({"time": 5, "price": "10.5", "qty": "2", "isBuyerMaker": True})
        assert trade.side is TradeSide.SELL
        assert trade.is_maker is True
        assert trade.price == 10.5

    def test_agg_trade_buy(self):
        trade = parse_agg_trade(_agg(1, 1000))
        assert trade.side is TradeSide.BUY
        assert trade.volume == 1.5
        assert trade.time == 1000


class TestRest:

    def test_satisfies_protocols(self):
        client = _client(lambda request: httpx.Response(200, json=[]))
        assert isinstance(client, MarketDataSource)
        assert isinstance(client, TradeStream)

    def test_fetch_candles(self):
        seen = {}

        def handler(request):
            seen.update(dict(request.url.params))
            seen["path"] = request.url.path
            return httpx.Response(200, json=[
                [1700000000000, "10", "12", "9", "11", "3", 1700000059999, "0", 1, "0", "0", "0"],
            ])

        candles = asyncio.run(_client(handler).fetch_candles("1h", 500))

        assert seen["path"] == "/api/v3/klines"
        assert seen["symbol"] == "BTCUSDT"
        assert seen["interval"] == "1h"
        assert seen["limit"] == "500"
        assert len(candles) == 1
        assert candles[0].time == 1700000000
        assert candles[0].close == 11

    def test_http_error_is_fetch_error(self):
        client = _client(lambda request: httpx.Response(429, json={"msg": "slow down"}))
        with pytest.raises(DataFetchError, match="429"):
            asyncio.run(client.fetch_candles("1m", 10))

    def test_transport_error_is_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(DataFetchError):
            asyncio.run(_client(handler).fetch_trades(10))

    def test_invalid_json_is_fetch_error(self):
        client = _client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(DataFetchError):
            asyncio.run(client.fetch_candles("1m", 10))

    def test_fetch_trades_caps_limit(self):
        seen = {}

        def handler(request):
            seen["limit"] = request.url.params["limit"]
            return httpx.Response(200, json=[
                {"id": 1, "price": "100", "qty": "1", "time": 10, "isBuyerMaker": False},
            ])

        trades = asyncio.run(_client(handler).fetch_trades(5000))
        assert seen["limit"] == "1000"
        assert trades[0].side is TradeSide.BUY

    def test_current_price_and_stats(self):
        def handler(request):
            if request.url.path.endswith("/price"):
                return httpx.Response(200, json={"symbol": "BTCUSDT", "price": "42000.5"})
            fields = ["priceChange", "priceChangePercent", "weightedAvgPrice", "lastPrice",
                      "volume", "quoteVolume", "highPrice", "lowPrice", "openPrice"]
            payload = {name: "1.5" for name in fields}
            payload["count"] = 12
            return httpx.Response(200, json=payload)

        client = _client(handler)
        assert asyncio.run(client.get_current_price()) == 42000.5
        stats = asyncio.run(client.get_24h_stats())
        assert stats["lastPrice"] == 1.5
        assert stats["count"] == 12


class TestHistoricalPaging:

    def test_pages_until_short_page(self, monkeypatch):
        monkeypatch.setattr(binance_client, "PAGE_PAUSE_SECONDS", 0)
        monkeypatch.setattr(binance_client, "MAX_TRADES_PER_REQUEST", 3)
        starts = []

        def handler(request):
            start = int(request.url.params["startTime"])
            starts.append(start)
            count = 3 if len(starts) == 1 else 2
            return httpx.Response(200, json=[_agg(i, start + i * 10) for i in range(count)])

        trades = asyncio.run(_client(handler).fetch_historical_trades(1000, 5000))

        assert len(trades) == 5
        assert starts == [1000, 1021]

    def test_stops_at_max_trades(self, monkeypatch):
        monkeypatch.setattr(binance_client, "PAGE_PAUSE_SECONDS", 0)
        monkeypatch.setattr(binance_client, "MAX_TRADES_PER_REQUEST", 2)

        def handler(request):
            start = int(request.url.params["startTime"])
            return httpx.Response(200, json=[_agg(i, start + i) for i in range(2)])

        trades = asyncio.run(_client(handler).fetch_historical_trades(0, 10 ** 9, max_trades=5))
        assert len(trades) == 5


class FakeConnection:
    """Async context manager / iterator standing in for a websocket."""

    def __init__(self, messages):
        self.messages = list(messages)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.messages:
            raise StopAsyncIteration
        return self.messages.pop(0)


class TestStream:

    def test_stream_trades_skips_malformed(self):
        messages = [json.dumps(_agg(1, 1000, maker=True)), "not json", json.dumps(_agg(2, 2000))]
        client = _client(lambda request: httpx.Response(200, json=[]))

        async def collect():
            return [t async for t in client.stream_trades()]

        with patch.object(binance_client.websockets, "connect", return_value=FakeConnection(messages)) as connect:
            trades = asyncio.run(collect())

        connect.assert_called_once_with("wss://stream.binance.com:9443/ws/btcusdt@trade")
        assert [t.time for t in trades] == [1000, 2000]
        assert trades[0].side is TradeSide.SELL

    def test_connection_failure_is_fetch_error(self):
        client = _client(lambda request: httpx.Response(200, json=[]))

        async def collect():
            return [t async for t in client.stream_trades()]

        with patch.object(binance_client.websockets, "connect", side_effect=OSError("unreachable")):
            with pytest.raises(DataFetchError):
                asyncio.run(collect())
