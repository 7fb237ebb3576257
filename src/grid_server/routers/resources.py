"""
Resource router for the Chart Grid Server.

Endpoints:
- GET    /api/timeframes                   - Timeframe catalog
- GET    /api/resources                    - Live resources in display order
- POST   /api/resources                    - Create and load a resource
- DELETE /api/resources/{id}               - Remove a resource
- PUT    /api/resources/{id}/timeframe     - Switch timeframe and reload
- GET    /api/resources/{id}/series        - Candles, swing overlay, status
- GET    /api/resources/{id}/image         - PNG (figure-backed surfaces only)
- POST   /api/resources/reload             - Reload every resource
- POST   /api/resources/fit                - Fit every chart to its data
- GET    /api/layout                       - Current grid layout
- GET    /api/settings, PUT /api/settings  - Shared analysis settings
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from ...chart_grid.constants import get_timeframe
from ...chart_grid.errors import ConfigurationError, DataFetchError
from ...chart_grid.resource import ChartResource
from ...swing_analysis.swing_detector import swing_line
from ..schemas import (
    CandleResponse,
    CreateResourceRequest,
    LinePointResponse,
    ReloadResponse,
    RemoveResourceResponse,
    ResourceResponse,
    SeriesResponse,
    SettingsResponse,
    SettingsUpdateRequest,
    SwingPointResponse,
    TimeframeChangeRequest,
    TimeframeResponse,
    VisibleRangeResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["resources"])


def _get_resource(resource_id: str) -> ChartResource:
    from ..api import get_state

    resource = get_state().registry.get(resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail=f"Resource not found: {resource_id}")
    return resource


def _resource_response(resource: ChartResource) -> ResourceResponse:
    return ResourceResponse(**resource.to_dict())


@router.get("/api/timeframes", response_model=List[TimeframeResponse])
async def list_timeframes():
    """Timeframes that resources can be created with."""
    from ..api import get_state

    return [TimeframeResponse(**tf.to_dict()) for tf in get_state().registry.available_timeframes()]


@router.get("/api/resources", response_model=List[ResourceResponse])
async def list_resources():
    from ..api import get_state

    return [_resource_response(r) for r in get_state().registry.resources]


@router.post("/api/resources", response_model=ResourceResponse)
async def create_resource(request: CreateResourceRequest):
    """
    Create a resource and wait for its initial load.

    Fails with 400 for an unknown timeframe, duplicate id or bad size, and
    with 502 when the data source cannot deliver candles.
    """
    from ..api import get_state

    registry = get_state().registry
    try:
        resource_id = await registry.add_resource(
            request.timeframe_id,
            resource_id=request.resource_id,
            width=request.width,
            height=request.height,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DataFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))

    resource = registry.get(resource_id)
    if resource is None:
        raise HTTPException(status_code=409, detail=f"Resource {resource_id} was removed while loading")
    return _resource_response(resource)


@router.delete("/api/resources/{resource_id}", response_model=RemoveResourceResponse)
async def remove_resource(resource_id: str):
    from ..api import get_state

    if not get_state().registry.remove_resource(resource_id):
        raise HTTPException(status_code=404, detail=f"Resource not found: {resource_id}")
    return RemoveResourceResponse(success=True, id=resource_id)


@router.put("/api/resources/{resource_id}/timeframe", response_model=ResourceResponse)
async def change_timeframe(resource_id: str, request: TimeframeChangeRequest):
    from ..api import get_state

    resource = _get_resource(resource_id)
    if get_timeframe(request.timeframe_id) is None:
        raise HTTPException(status_code=400, detail=f"Unknown timeframe: {request.timeframe_id}")

    loaded = await get_state().registry.reconfigure_timeframe(resource_id, request.timeframe_id)
    if not loaded and resource.last_error is not None and not resource.destroyed:
        raise HTTPException(status_code=502, detail=str(resource.last_error))
    return _resource_response(resource)


@router.get("/api/resources/{resource_id}/series", response_model=SeriesResponse)
async def get_series(resource_id: str):
    """Candles and swing overlay as last rendered for the resource."""
    resource = _get_resource(resource_id)
    visible = resource.surface.get_visible_range()

    return SeriesResponse(
        id=resource.resource_id,
        timeframe_id=resource.timeframe.id,
        candles=[
            CandleResponse(
                time=c.time, open=c.open, high=c.high, low=c.low, close=c.close, volume=c.volume,
            )
            for c in resource.candles
        ],
        swing_points=[SwingPointResponse(**p.to_dict()) for p in resource.swing_points],
        swing_line=[LinePointResponse(**p) for p in swing_line(resource.swing_points)],
        status=resource.status_text,
        failed=resource.status_failed,
        visible_range=VisibleRangeResponse(start=visible.start, end=visible.end) if visible else None,
    )


@router.get("/api/resources/{resource_id}/image")
async def get_image(resource_id: str):
    resource = _get_resource(resource_id)
    to_png = getattr(resource.surface, "to_png", None)
    if to_png is None:
        raise HTTPException(status_code=404, detail="Surface does not render images")
    return Response(content=to_png(), media_type="image/png")


@router.post("/api/resources/reload", response_model=ReloadResponse)
async def reload_resources():
    """Reload every resource concurrently; individual failures are reported, not raised."""
    from ..api import get_state

    results = await get_state().registry.reload_all()
    return ReloadResponse(results=results)


@router.post("/api/resources/fit")
async def fit_resources():
    from ..api import get_state

    get_state().registry.fit_all()
    return {"success": True}


@router.get("/api/layout")
async def get_layout():
    from ..api import get_state

    return get_state().registry.build_state().to_dict()


@router.get("/api/settings", response_model=SettingsResponse)
async def get_settings():
    from ..api import get_state

    return SettingsResponse(**get_state().registry.settings.to_dict())


@router.put("/api/settings", response_model=SettingsResponse)
async def update_settings(request: SettingsUpdateRequest):
    """Apply a partial settings update to every resource."""
    from ..api import get_state

    changes = request.model_dump(exclude_none=True)
    try:
        settings = get_state().registry.broadcast_settings(**changes)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SettingsResponse(**settings.to_dict())
