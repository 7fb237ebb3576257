"""
Chart Grid Configuration

Timing, sizing and retry parameters for the resource registry, plus the
analysis settings shared by every chart resource.
"""

from dataclasses import dataclass, field, asdict, replace, fields
from typing import Any, Dict, Tuple

from ..swing_analysis.swing_config import SwingConfig
from .constants import DEFAULT_TIMEFRAME_IDS, GRID_COLUMNS, STORAGE_KEY
from .errors import ConfigurationError


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff for failed loads.

    Attributes:
        base_delay: Delay before the first retry, in seconds.
        max_delay: Upper bound on any single delay.
        max_retries: Retries after the initial attempt before FAILED.
    """
    base_delay: float = 1.0
    max_delay: float = 10.0
    max_retries: int = 3

    def __post_init__(self):
        if self.base_delay < 0 or self.max_delay < 0:
            raise ConfigurationError("Retry delays must be non-negative")
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.max_retries}")

    def delay_for(self, retry_count: int) -> float:
        """Backoff before retry number retry_count + 1."""
        return min(self.base_delay * 2 ** retry_count, self.max_delay)


@dataclass(frozen=True)
class GridConfig:
    """
    Registry-wide settings.

    Attributes:
        layout_settle_delay: Wait after mounting a panel before the surface
            is constructed, so the host can lay the element out.
        resize_debounce: Quiet period for dimension-change notifications.
        persist_debounce: Quiet period before a scheduled layout write.
        columns: Grid column count written with the layout.
        default_width / default_height: Size for new resources.
        min_* / max_*: Accepted dimension range.
        storage_key: Persistence store key for the layout.
        default_timeframes: Timeframe ids created when nothing is saved.
        retry: Backoff policy for every resource.
    """
    layout_settle_delay: float = 0.1
    resize_debounce: float = 0.05
    persist_debounce: float = 0.5
    columns: int = GRID_COLUMNS
    default_width: int = 600
    default_height: int = 400
    min_width: int = 100
    min_height: int = 100
    max_width: int = 10000
    max_height: int = 10000
    storage_key: str = STORAGE_KEY
    default_timeframes: Tuple[str, ...] = DEFAULT_TIMEFRAME_IDS
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def validate_dimensions(self, width: int, height: int) -> None:
        """Raise ConfigurationError unless both dimensions are in range."""
        if not self.min_width <= width <= self.max_width:
            raise ConfigurationError(
                f"width {width} outside [{self.min_width}, {self.max_width}]"
            )
        if not self.min_height <= height <= self.max_height:
            raise ConfigurationError(
                f"height {height} outside [{self.min_height}, {self.max_height}]"
            )


@dataclass(frozen=True)
class AnalysisSettings:
    """
    Swing analysis settings shared by all resources.

    Frozen: the registry owns the single current value and replaces it on
    every change.
    """
    swing_enabled: bool = True
    comparison_window: int = 5
    forward_window: int = 5
    analysis_window: int = 200

    def __post_init__(self):
        try:
            self.swing_config  # SwingConfig validates the windows
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    @property
    def swing_config(self) -> SwingConfig:
        return SwingConfig(
            comparison_window=self.comparison_window,
            forward_window=self.forward_window,
            analysis_window=self.analysis_window,
        )

    def replace(self, **changes: Any) -> "AnalysisSettings":
        """
        New settings with the given fields changed.

        Raises:
            ConfigurationError: Unknown field or invalid window value.
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ConfigurationError(f"Unknown analysis settings: {sorted(unknown)}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
