"""
Timeframe catalog and grid defaults.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class TimeframeSpec:
    """
    A chartable timeframe.

    Attributes:
        id: Catalog identifier ("1m", "4h", "1M").
        interval: Interval string passed to the market data source.
        candle_limit: Number of candles requested per load.
        label: Human readable name.
    """
    id: str
    interval: str
    candle_limit: int
    label: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "interval": self.interval,
            "candle_limit": self.candle_limit,
            "label": self.label,
        }


TIMEFRAMES: Tuple[TimeframeSpec, ...] = (
    TimeframeSpec("1m", "1m", 500, "1 Minute"),
    TimeframeSpec("3m", "3m", 500, "3 Minutes"),
    TimeframeSpec("5m", "5m", 500, "5 Minutes"),
    TimeframeSpec("15m", "15m", 500, "15 Minutes"),
    TimeframeSpec("30m", "30m", 500, "30 Minutes"),
    TimeframeSpec("1h", "1h", 500, "1 Hour"),
    TimeframeSpec("2h", "2h", 500, "2 Hours"),
    TimeframeSpec("4h", "4h", 500, "4 Hours"),
    TimeframeSpec("6h", "6h", 500, "6 Hours"),
    TimeframeSpec("12h", "12h", 500, "12 Hours"),
    TimeframeSpec("1d", "1d", 365, "Daily"),
    TimeframeSpec("3d", "3d", 365, "3 Days"),
    TimeframeSpec("1w", "1w", 200, "Weekly"),
    TimeframeSpec("1M", "1M", 120, "Monthly"),
)

_BY_ID: Dict[str, TimeframeSpec] = {tf.id: tf for tf in TIMEFRAMES}

DEFAULT_TIMEFRAME_IDS: Tuple[str, ...] = ("1m", "5m", "15m", "30m", "1h", "4h", "1d", "1w")

STORAGE_KEY = "multi-timeframe-grid-state"
GRID_COLUMNS = 4
RESOURCE_ID_PREFIX = "chart-"


def get_timeframe(timeframe_id: str) -> Optional[TimeframeSpec]:
    """Catalog lookup; None for unknown ids."""
    return _BY_ID.get(timeframe_id)


def default_timeframes() -> List[TimeframeSpec]:
    return [_BY_ID[tf_id] for tf_id in DEFAULT_TIMEFRAME_IDS]
