"""
Volume profile: trade aggregation into price-level histograms with point of
control and value area.
"""

from .types import (
    PriceLevelBin,
    Trade,
    TradeSide,
    ValueArea,
    VolumeProfile,
    VolumeProfileMetrics,
)
from .aggregator import (
    DEFAULT_PRICE_LEVELS,
    VALUE_AREA_PERCENTAGE,
    aggregate,
    build_profile,
    build_profiles,
    compute_metrics,
    point_of_control,
    value_area,
)
from .live_feed import LiveProfileFeed

__all__ = [
    "PriceLevelBin",
    "Trade",
    "TradeSide",
    "ValueArea",
    "VolumeProfile",
    "VolumeProfileMetrics",
    "DEFAULT_PRICE_LEVELS",
    "VALUE_AREA_PERCENTAGE",
    "aggregate",
    "build_profile",
    "build_profiles",
    "compute_metrics",
    "point_of_control",
    "value_area",
    "LiveProfileFeed",
]
