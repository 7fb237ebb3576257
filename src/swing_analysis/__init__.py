# Swing Analysis Module
#
# Swing point detection and structural classification (HH/LH/HL/LL).

from .types import Candle, SwingClassification, SwingPoint
from .swing_config import SwingConfig
from .swing_detector import detect_swings, detect_swings_with_config, swing_line

__all__ = [
    "Candle",
    "SwingClassification",
    "SwingPoint",
    "SwingConfig",
    "detect_swings",
    "detect_swings_with_config",
    "swing_line",
]
