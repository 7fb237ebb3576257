"""Exceptions raised by the chart grid."""

from ..data.market_data import DataFetchError


class GridError(Exception):
    """Base class for chart grid errors."""


class ConfigurationError(GridError, ValueError):
    """Invalid timeframe, duplicate resource id or out-of-range dimensions."""


class StorageError(GridError):
    """Persistence store read or write failure."""


class StaleOperationError(GridError):
    """A load completed after its resource was destroyed or superseded."""


__all__ = [
    "DataFetchError",
    "GridError",
    "ConfigurationError",
    "StorageError",
    "StaleOperationError",
]
