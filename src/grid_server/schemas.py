"""
Pydantic models for the chart grid API.

All request/response schemas for resource, settings and profile endpoints.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

# Upper bound on requested profile bins
MAX_PRICE_LEVELS = 1000


# ============================================================================
# Timeframes / Resources
# ============================================================================


class TimeframeResponse(BaseModel):
    """A catalog timeframe."""
    id: str
    interval: str
    candle_limit: int
    label: str


class ResourceResponse(BaseModel):
    """Lifecycle view of one chart resource."""
    id: str
    timeframe_id: str
    label: str
    width: int
    height: int
    state: str  # LifecycleState value
    retry_count: int
    status: str
    failed: bool
    last_error: Optional[str] = None


class CreateResourceRequest(BaseModel):
    """Request body for POST /api/resources."""
    timeframe_id: str
    resource_id: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class TimeframeChangeRequest(BaseModel):
    """Request body for PUT /api/resources/{id}/timeframe."""
    timeframe_id: str


class RemoveResourceResponse(BaseModel):
    success: bool
    id: str


class ReloadResponse(BaseModel):
    """Per-resource outcome of POST /api/resources/reload."""
    results: Dict[str, bool]


# ============================================================================
# Series
# ============================================================================


class CandleResponse(BaseModel):
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float


class LinePointResponse(BaseModel):
    time: int
    value: float


class SwingPointResponse(BaseModel):
    price: float
    time: int
    classification: str  # HH, LH, HL, LL
    source_index: int
    is_high: bool


class VisibleRangeResponse(BaseModel):
    start: float
    end: float


class SeriesResponse(BaseModel):
    """Everything needed to draw one chart resource."""
    id: str
    timeframe_id: str
    candles: List[CandleResponse]
    swing_points: List[SwingPointResponse]
    swing_line: List[LinePointResponse]
    status: str
    failed: bool
    visible_range: Optional[VisibleRangeResponse] = None


# ============================================================================
# Analysis Settings
# ============================================================================


class SettingsResponse(BaseModel):
    swing_enabled: bool
    comparison_window: int
    forward_window: int
    analysis_window: int


class SettingsUpdateRequest(BaseModel):
    """Partial update; omitted fields keep their current value."""
    swing_enabled: Optional[bool] = None
    comparison_window: Optional[int] = None
    forward_window: Optional[int] = None
    analysis_window: Optional[int] = None


# ============================================================================
# Volume Profile
# ============================================================================


class TradeRequest(BaseModel):
    time: int  # milliseconds
    price: float
    volume: float = Field(ge=0)
    side: str  # "buy" or "sell"
    is_maker: bool = False


class ProfileRequest(BaseModel):
    """Trades to aggregate into a volume profile."""
    trades: List[TradeRequest]
    price_level_count: int = Field(default=50, ge=1, le=MAX_PRICE_LEVELS)
    tick_size: Optional[float] = Field(default=None, gt=0)
    value_area_fraction: float = Field(default=0.7, gt=0, le=1)


class PriceLevelResponse(BaseModel):
    price: float
    total_volume: float
    buy_volume: float
    sell_volume: float
    maker_volume: float
    taker_volume: float
    trade_count: int


class MetricsResponse(BaseModel):
    current_price: float
    price_change: float
    price_change_percent: float
    total_trades: int
    total_volume: float
    poc: Optional[float] = None
    value_area_high: Optional[float] = None
    value_area_low: Optional[float] = None


class ProfileResponse(BaseModel):
    time: int
    width: int
    bins: List[PriceLevelResponse]
    poc: Optional[float] = None
    value_area_high: Optional[float] = None
    value_area_low: Optional[float] = None
    metrics: MetricsResponse
