from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from src.domain.models import PeriodScope
from src.services.ranker import RankedBoard

logger = logging.getLogger(__name__)

CacheKey = tuple[PeriodScope, int]


@dataclass(frozen=True)
class _Entry:
    board: RankedBoard
    stored_at: float


class RankingCache:
    """
    Time-bounded cache of ranked boards keyed by (scope, window_size).

    - Entries expire after ttl_seconds (monotonic clock)
    - invalidate() drops everything; call it whenever a fact is recorded
    - Stored boards are immutable; per-caller snapshots are derived on read

    A board computed before an invalidation is never stored: put() must be
    given the generation observed before the computation started.
    """

    def __init__(self, *, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[CacheKey, _Entry] = {}
        self._generation = 0

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    @property
    def generation(self) -> int:
        return self._generation

    def get(self, key: CacheKey) -> Optional[RankedBoard]:
        if not self.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.stored_at >= self._ttl:
            del self._entries[key]
            return None
        return entry.board

    def put(self, key: CacheKey, board: RankedBoard, *, generation: int) -> bool:
        if not self.enabled or generation != self._generation:
            return False
        self._entries[key] = _Entry(board=board, stored_at=self._clock())
        return True

    def invalidate(self) -> None:
        self._generation += 1
        if self._entries:
            logger.debug("Ranking cache invalidated (%s entries)", len(self._entries))
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
