# Chart Grid Module
#
# Lifecycle management for a grid of multi-timeframe chart resources:
# creation, loading with retry, resizing, layout persistence and teardown.

from .constants import (
    DEFAULT_TIMEFRAME_IDS,
    STORAGE_KEY,
    TIMEFRAMES,
    TimeframeSpec,
    default_timeframes,
    get_timeframe,
)
from .config import AnalysisSettings, GridConfig, RetryPolicy
from .errors import (
    ConfigurationError,
    DataFetchError,
    GridError,
    StaleOperationError,
    StorageError,
)
from .rendering import PanelElement, RenderingSurface, SurfaceHost, VisibleRange
from .surfaces import SnapshotSurface, SnapshotSurfaceHost
from .persistence import InMemoryStore, JsonFileStore, PersistenceStore
from .layout_codec import GridLayoutEntry, GridState, LayoutCodec
from .debounce import Debouncer
from .resource import ChartResource, LifecycleState
from .registry import ResourceRegistry

__all__ = [
    "DEFAULT_TIMEFRAME_IDS",
    "STORAGE_KEY",
    "TIMEFRAMES",
    "TimeframeSpec",
    "default_timeframes",
    "get_timeframe",
    "AnalysisSettings",
    "GridConfig",
    "RetryPolicy",
    "ConfigurationError",
    "DataFetchError",
    "GridError",
    "StaleOperationError",
    "StorageError",
    "PanelElement",
    "RenderingSurface",
    "SurfaceHost",
    "VisibleRange",
    "SnapshotSurface",
    "SnapshotSurfaceHost",
    "InMemoryStore",
    "JsonFileStore",
    "PersistenceStore",
    "GridLayoutEntry",
    "GridState",
    "LayoutCodec",
    "Debouncer",
    "ChartResource",
    "LifecycleState",
    "ResourceRegistry",
]
