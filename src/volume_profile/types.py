"""Data types for trade aggregation and volume profiles."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class TradeSide(Enum):
    """Aggressor side of a trade."""
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: Any) -> "TradeSide":
        """Accept 'buy'/'BUY'/'sell'/'SELL' or an existing TradeSide."""
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


@dataclass(frozen=True)
class Trade:
    """
    A single trade print.

    Attributes:
        time: Trade time in milliseconds since epoch.
        price: Execution price.
        volume: Quantity traded.
        side: Aggressor side.
        is_maker: True when the buyer was the maker.
    """
    time: int
    price: float
    volume: float
    side: TradeSide
    is_maker: bool = False


@dataclass
class PriceLevelBin:
    """Volume accumulated at one price level of the grid."""
    price: float
    total_volume: float = 0.0
    buy_volume: float = 0.0
    sell_volume: float = 0.0
    maker_volume: float = 0.0
    taker_volume: float = 0.0
    trade_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ValueArea:
    """Price bounds of the value area."""
    low: float
    high: float


@dataclass
class VolumeProfile:
    """
    One volume profile anchored at a chart time.

    Attributes:
        time: Chart time (seconds) of the first trade in the profile.
        bins: Occupied price levels, ascending by price.
        width: Display width in bars.
    """
    time: int
    bins: List[PriceLevelBin] = field(default_factory=list)
    width: int = 10

    @property
    def total_volume(self) -> float:
        return sum(b.total_volume for b in self.bins)


@dataclass(frozen=True)
class VolumeProfileMetrics:
    """Summary figures for a profile and the trades it was built from."""
    current_price: float
    price_change: float
    price_change_percent: float
    total_trades: int
    total_volume: float
    poc: Optional[float]
    value_area_high: Optional[float]
    value_area_low: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
