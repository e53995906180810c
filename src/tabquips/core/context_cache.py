"""Short-TTL memoizer around a context provider.

Bursts of tab events arrive faster than a browser snapshot is worth
recomputing, so the last snapshot is reused while it is fresh.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Tuple

from tabquips.core.models import BrowserContext
from tabquips.core.ports import ContextProvider

LOGGER = logging.getLogger(__name__)


class ContextCache:
    """Single-slot cache; provider errors propagate and are never cached."""

    def __init__(
        self,
        provider: ContextProvider,
        ttl_ms: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._provider = provider
        self._ttl_seconds = ttl_ms / 1000.0
        self._clock = clock
        self._slot: Optional[Tuple[BrowserContext, float]] = None
        self._lock = asyncio.Lock()

    def _fresh(self) -> Optional[BrowserContext]:
        if self._slot is None:
            return None
        context, stored_at = self._slot
        if self._clock() - stored_at < self._ttl_seconds:
            return context
        return None

    async def get_context(self) -> BrowserContext:
        cached = self._fresh()
        if cached is not None:
            return cached

        async with self._lock:
            # Another caller may have refreshed the slot while we waited.
            cached = self._fresh()
            if cached is not None:
                return cached
            context = await self._provider.get_context()
            self._slot = (context, self._clock())
            LOGGER.debug("Context refreshed: tabs=%s groups=%s", context.tab_count, context.group_count)
            return context

    def invalidate(self) -> None:
        self._slot = None

    def reset(self) -> None:
        self.invalidate()
