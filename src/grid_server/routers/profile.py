"""
Volume profile router for the Chart Grid Server.

Endpoints:
- POST /api/profile         - Build a profile from trades in the request body
- GET  /api/profile/recent  - Build a profile from the data source's recent trades
"""

import logging
from typing import Optional, Sequence

from fastapi import APIRouter, HTTPException, Query

from ...chart_grid.errors import DataFetchError
from ...volume_profile.aggregator import build_profile, compute_metrics
from ...volume_profile.types import Trade, TradeSide
from ..schemas import MAX_PRICE_LEVELS, MetricsResponse, PriceLevelResponse, ProfileRequest, ProfileResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["profile"])


def _profile_response(
    trades: Sequence[Trade],
    price_level_count: int,
    tick_size: Optional[float] = None,
    value_area_fraction: float = 0.7,
) -> ProfileResponse:
    if not trades:
        raise HTTPException(status_code=400, detail="No trades to aggregate")
    try:
        profile = build_profile(trades, price_level_count, tick_size=tick_size)
        metrics = compute_metrics(trades, profile, value_area_fraction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ProfileResponse(
        time=profile.time,
        width=profile.width,
        bins=[PriceLevelResponse(**b.to_dict()) for b in profile.bins],
        poc=metrics.poc,
        value_area_high=metrics.value_area_high,
        value_area_low=metrics.value_area_low,
        metrics=MetricsResponse(**metrics.to_dict()),
    )


@router.post("/api/profile", response_model=ProfileResponse)
async def create_profile(request: ProfileRequest):
    """Aggregate posted trades into price levels with POC and value area."""
    try:
        trades = [
            Trade(
                time=t.time,
                price=t.price,
                volume=t.volume,
                side=TradeSide.parse(t.side),
                is_maker=t.is_maker,
            )
            for t in request.trades
        ]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid trade: {e}")

    return _profile_response(
        trades,
        request.price_level_count,
        tick_size=request.tick_size,
        value_area_fraction=request.value_area_fraction,
    )


@router.get("/api/profile/recent", response_model=ProfileResponse)
async def recent_profile(
    limit: int = Query(1000, ge=1, le=1000),
    price_level_count: int = Query(50, ge=1, le=MAX_PRICE_LEVELS),
):
    """Profile of the most recent trades reported by the market data source."""
    from ..api import get_state

    try:
        trades = await get_state().registry.source.fetch_trades(limit)
    except DataFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return _profile_response(trades, price_level_count)
