"""Core data types for swing analysis."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


@dataclass(frozen=True)
class Candle:
    """Single OHLC candle. `time` is a Unix timestamp in seconds."""
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.time, tz=timezone.utc)


class SwingClassification(Enum):
    """Structural label of a swing point relative to the previous one on its side."""
    HH = "HH"  # Higher high
    LH = "LH"  # Lower high
    HL = "HL"  # Higher low
    LL = "LL"  # Lower low


@dataclass(frozen=True)
class SwingPoint:
    """
    A classified swing high or low.

    Attributes:
        price: High of the candle for swing highs, low for swing lows.
        time: Timestamp of the source candle.
        classification: HH/LH for highs, HL/LL for lows.
        source_index: Index of the candle in the analysed series.
        is_high: True for swing highs.
    """
    price: float
    time: int
    classification: SwingClassification
    source_index: int
    is_high: bool

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        return {
            "price": self.price,
            "time": self.time,
            "classification": self.classification.value,
            "source_index": self.source_index,
            "is_high": self.is_high,
        }
