"""TTL cache for the full real-time estimates snapshot."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from tus_mcp.models.feed import Estimate

logger = logging.getLogger(__name__)

EstimatesSnapshot = list[Estimate]


class EstimatesCache:
    """Single-slot TTL cache over the estimates collection.

    Holds one (snapshot, fetched_at) pair. The snapshot is shared by the
    active-line gate and by the next-bus annotations of every planning call.
    Uses an async lock to prevent concurrent fetches.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[EstimatesSnapshot]],
        ttl: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            fetch: Coroutine function returning the full estimates collection.
            ttl: Time-to-live in seconds for the snapshot.
            clock: Monotonic clock in seconds.
        """
        self._fetch = fetch
        self._ttl = ttl
        self._clock = clock
        self._snapshot: EstimatesSnapshot | None = None
        self._fetched_at: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def _fresh(self) -> EstimatesSnapshot | None:
        if self._snapshot is not None and self._clock() - self._fetched_at < self._ttl:
            return self._snapshot
        return None

    async def get(self) -> EstimatesSnapshot:
        """Return the cached snapshot, refreshing it once the TTL has elapsed.

        Raises:
            TusAPIError: If a refresh is needed and the fetch fails.
        """
        cached = self._fresh()
        if cached is not None:
            return cached

        async with self._lock:
            # Another caller may have refreshed while we waited
            cached = self._fresh()
            if cached is not None:
                return cached
            return await self._refresh_locked()

    async def refresh(self) -> EstimatesSnapshot:
        """Fetch a new snapshot unconditionally and store it."""
        async with self._lock:
            return await self._refresh_locked()

    async def _refresh_locked(self) -> EstimatesSnapshot:
        snapshot = await self._fetch()
        self._snapshot = snapshot
        self._fetched_at = self._clock()
        logger.debug(f"Cached {len(snapshot)} estimates")
        return snapshot

    def clear(self) -> None:
        """Clear the cached snapshot."""
        self._snapshot = None
        self._fetched_at = 0.0
