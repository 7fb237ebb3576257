"""
Live volume profile maintained from a trade stream.

The feed keeps a bounded buffer of recent trades and rebuilds the profile
every `update_every` trades, handing the new profile and its metrics to each
registered listener.
"""

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from .aggregator import DEFAULT_PRICE_LEVELS, build_profile, compute_metrics
from .types import Trade, VolumeProfile, VolumeProfileMetrics

logger = logging.getLogger(__name__)

ProfileListener = Callable[[VolumeProfile, VolumeProfileMetrics], None]


class LiveProfileFeed:
    """
    Rolling volume profile over the most recent trades.

    Args:
        source: MarketDataSource used for the initial load; must also provide
            stream_trades() for run().
        price_level_count: Levels per rebuilt profile.
        update_every: Rebuild after this many new trades.
        buffer_size: Maximum number of trades kept; oldest are dropped.
    """

    def __init__(
        self,
        source,
        price_level_count: int = DEFAULT_PRICE_LEVELS,
        update_every: int = 50,
        buffer_size: int = 1000,
    ):
        if update_every < 1:
            raise ValueError(f"update_every must be >= 1, got {update_every}")
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1, got {buffer_size}")

        self.source = source
        self.price_level_count = price_level_count
        self.update_every = update_every
        self._trades: Deque[Trade] = deque(maxlen=buffer_size)
        self._pending = 0
        self._listeners: List[ProfileListener] = []
        self._stop = asyncio.Event()

        self.profile: Optional[VolumeProfile] = None
        self.metrics: Optional[VolumeProfileMetrics] = None

    @property
    def trades(self) -> List[Trade]:
        return list(self._trades)

    def add_listener(self, listener: ProfileListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def load(self, limit: int = 1000) -> Optional[VolumeProfile]:
        """Seed the buffer with recent trades and build the first profile."""
        trades = await self.source.fetch_trades(limit)
        self._trades.extend(sorted(trades, key=lambda t: t.time))
        logger.info(f"Seeded live profile with {len(trades)} trades")
        return self._rebuild()

    def on_trade(self, trade: Trade) -> None:
        self._trades.append(trade)
        self._pending += 1
        if self._pending >= self.update_every:
            self._rebuild()

    def _rebuild(self) -> Optional[VolumeProfile]:
        self._pending = 0
        if not self._trades:
            return None

        trades = list(self._trades)
        self.profile = build_profile(trades, self.price_level_count)
        self.metrics = compute_metrics(trades, self.profile)
        for listener in list(self._listeners):
            listener(self.profile, self.metrics)
        return self.profile

    async def run(self) -> None:
        """Consume the source's trade stream until stop() is called."""
        self._stop.clear()
        stream = self.source.stream_trades()
        try:
            async for trade in stream:
                if self._stop.is_set():
                    break
                self.on_trade(trade)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
            logger.info("Live profile feed stopped")

    def stop(self) -> None:
        self._stop.set()
