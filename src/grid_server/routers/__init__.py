"""
Router package for the Chart Grid Server.

Routers:
- resources.py: Chart resource lifecycle, series and analysis settings
- profile.py: Volume profile aggregation
"""

from .resources import router as resources_router
from .profile import router as profile_router

__all__ = [
    "resources_router",
    "profile_router",
]
