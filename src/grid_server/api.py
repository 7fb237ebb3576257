"""
FastAPI backend for the multi-timeframe chart grid.

Serves:
- Chart resource lifecycle (create, remove, change timeframe, reload)
- Rendered series (candles, swing overlay, status) per resource
- Shared swing analysis settings
- Volume profiles built from posted or recent trades
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from ..chart_grid.registry import ResourceRegistry

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@dataclass
class AppState:
    """Application state for the grid server."""
    registry: ResourceRegistry
    # Rebuild the saved (or default) grid when the server starts
    restore_on_startup: bool = True


# Global state
state: Optional[AppState] = None


def get_state() -> AppState:
    """Get the application state."""
    if state is None:
        raise HTTPException(
            status_code=500,
            detail="Application not initialized. Start the server with serve()."
        )
    return state


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if state is not None and state.restore_on_startup:
        created = await state.registry.restore()
        logger.info(f"Grid ready with {len(created)} resources")
    yield
    if state is not None:
        await state.registry.close()
        close_source = getattr(state.registry.source, "close", None)
        if close_source is not None:
            await close_source()


app = FastAPI(
    title="Chart Grid Server",
    description="Multi-timeframe chart grid with swing structure and volume profiles",
    version=VERSION,
    lifespan=lifespan,
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "initialized": state is not None,
        "version": VERSION,
        "resources": state.registry.summary() if state is not None else {},
    }


# ============================================================================
# Wire up routers
# ============================================================================

from .routers import (
    resources_router,
    profile_router,
)

app.include_router(resources_router)
app.include_router(profile_router)
