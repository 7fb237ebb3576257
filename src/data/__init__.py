# Market data loading and sources.

from .market_data import (
    DataFetchError,
    FileMarketDataSource,
    MarketDataSource,
    StaticMarketDataSource,
    TradeStream,
)
from .binance_client import BinanceClient
