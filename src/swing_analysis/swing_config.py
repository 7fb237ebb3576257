"""
Swing Detection Configuration

Window parameters for swing point detection, kept in one frozen config so
callers never pass loose integers around.
"""

from dataclasses import dataclass, asdict, replace
from typing import Any, Dict


@dataclass(frozen=True)
class SwingConfig:
    """
    Window parameters for swing detection.

    Attributes:
        comparison_window: Candles checked BEFORE the candidate. Default 5.
        forward_window: Candles checked AFTER the candidate. Lower values
            detect swings sooner but may repaint; higher values confirm
            swings later. Default 5.
        analysis_window: Only the most recent N candles are scanned.
            Default 200.

    Example:
        >>> config = SwingConfig.default()
        >>> config.min_candles
        11
    """
    comparison_window: int = 5
    forward_window: int = 5
    analysis_window: int = 200

    def __post_init__(self):
        if self.comparison_window < 0:
            raise ValueError(f"comparison_window must be >= 0, got {self.comparison_window}")
        if self.forward_window < 0:
            raise ValueError(f"forward_window must be >= 0, got {self.forward_window}")
        if self.analysis_window < 1:
            raise ValueError(f"analysis_window must be >= 1, got {self.analysis_window}")

    @classmethod
    def default(cls) -> "SwingConfig":
        """Create a config with default values."""
        return cls()

    @property
    def min_candles(self) -> int:
        """Smallest series length that can contain a swing point."""
        return self.comparison_window + self.forward_window + 1

    def with_windows(self, **kwargs: Any) -> "SwingConfig":
        """
        Create a new config with modified window values.

        Since SwingConfig is frozen, this creates a new instance.

        Example:
            >>> SwingConfig.default().with_windows(forward_window=2).forward_window
            2
        """
        return replace(self, **kwargs)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)
