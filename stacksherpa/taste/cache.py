"""Short-lived cache for computed taste.

Taste is recomputed from every shared ledger, so the result is kept for a
few seconds and dropped whenever a decision is written.
"""

from __future__ import annotations

import time
from typing import Callable

from stacksherpa.config import DEFAULT_PATTERN_CACHE_TTL
from stacksherpa.models import ComputedTaste


class PatternCache:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_PATTERN_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[float, tuple[float, ComputedTaste]] = {}

    def get(self, half_life_days: float) -> ComputedTaste | None:
        entry = self._entries.get(half_life_days)
        if entry is None:
            return None
        stored_at, taste = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[half_life_days]
            return None
        return taste

    def set(self, half_life_days: float, taste: ComputedTaste) -> None:
        self._entries[half_life_days] = (self._clock(), taste)

    def invalidate(self) -> None:
        self._entries.clear()
