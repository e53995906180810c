"""Deduplication helpers (core domain)."""

from __future__ import annotations

from collections import deque
import random
from typing import Deque, Optional, Sequence

from tabquips.core.models import ContentEntry


class RecentHistory:
    """Bounded set of recently shown ids; the oldest id ages out first."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._order: Deque[str] = deque()
        self._members: set[str] = set()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._members

    def __len__(self) -> int:
        return len(self._order)

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(self, item_id: str) -> None:
        # Re-showing an id refreshes its position instead of duplicating it;
        # that path scans the ring, which is linear in capacity.
        if item_id in self._members:
            self._order.remove(item_id)
        else:
            self._members.add(item_id)
        self._order.append(item_id)
        while len(self._order) > self._capacity:
            self._members.discard(self._order.popleft())

    def snapshot(self) -> tuple[str, ...]:
        """Ids oldest first."""

        return tuple(self._order)

    def clear(self) -> None:
        self._order.clear()
        self._members.clear()


class ContentSelector:
    """Pick one entry at random while avoiding recent repeats.

    When every candidate was shown recently, the selector falls back to the
    full candidate list: repetition is preferred over silence.
    """

    def __init__(self, max_recent: int = 10, rng: Optional[random.Random] = None) -> None:
        self._history = RecentHistory(max_recent)
        self._rng = rng or random.Random()

    @property
    def recent_ids(self) -> tuple[str, ...]:
        return self._history.snapshot()

    def pick(self, candidates: Sequence[ContentEntry]) -> Optional[ContentEntry]:
        """Choose without touching history; pair with ``record`` once shown."""

        if not candidates:
            return None
        fresh = [entry for entry in candidates if entry.id not in self._history]
        pool = fresh or list(candidates)
        return self._rng.choice(pool)

    def record(self, entry_id: str) -> None:
        self._history.record(entry_id)

    def select(self, candidates: Sequence[ContentEntry]) -> Optional[ContentEntry]:
        chosen = self.pick(candidates)
        if chosen is not None:
            self.record(chosen.id)
        return chosen

    def reset(self) -> None:
        self._history.clear()
