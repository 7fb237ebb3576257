"""Trailing-edge debouncing on the running asyncio loop."""

import asyncio
from typing import Any, Callable, Optional, Tuple


class Debouncer:
    """
    Calls `func` once `delay` seconds have passed without another trigger.

    Each trigger replaces the pending arguments; only the last call's
    arguments are delivered. Must be triggered from within a running loop.
    """

    def __init__(self, delay: float, func: Callable[..., Any]):
        self.delay = delay
        self.func = func
        self._handle: Optional[asyncio.TimerHandle] = None
        self._args: Tuple[Any, ...] = ()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any) -> None:
        self.cancel()
        self._args = args
        self._handle = asyncio.get_running_loop().call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self.func(*self._args)

    def flush(self) -> None:
        """Run a pending call now."""
        if self._handle is None:
            return
        self.cancel()
        self.func(*self._args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
