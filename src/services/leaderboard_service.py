from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.domain.models import LeaderboardSnapshot, PeriodScope, RankedEntry
from src.services.aggregator import ScoreAggregator
from src.services.ranker import RankedBoard, check_window_size, rank_records
from src.services.ranking_cache import RankingCache
from src.services.scopes import parse_scope

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 50


class LeaderboardService:
    """
    High-level leaderboard queries.

    Every call aggregates the current facts (or reuses a fresh cached board),
    ranks the whole population once and answers both the top-N window and the
    caller lookup from that one ordering. Store failures propagate as
    DataUnavailable; they are never turned into an empty leaderboard.
    """

    def __init__(
        self,
        *,
        aggregator: ScoreAggregator,
        cache: Optional[RankingCache] = None,
        default_window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> None:
        self._aggregator = aggregator
        self._cache = cache
        self._build_lock = asyncio.Lock()
        self._default_window_size = check_window_size(default_window_size)

    @property
    def default_window_size(self) -> int:
        return self._default_window_size

    async def get_leaderboard(
        self,
        *,
        scope: str | PeriodScope = PeriodScope.ALL,
        window_size: Optional[int] = None,
        caller_id: Optional[str] = None,
    ) -> LeaderboardSnapshot:
        scope = parse_scope(scope)
        if window_size is None:
            window_size = self._default_window_size
        window_size = check_window_size(window_size)

        board = await self._get_board(scope=scope, window_size=window_size)
        return board.snapshot(window_size, caller_id)

    async def get_rank(
        self,
        *,
        caller_id: str,
        scope: str | PeriodScope = PeriodScope.ALL,
    ) -> Optional[RankedEntry]:
        """
        Returns the caller's RankedEntry (or None if they have no profile).
        Same ordering as get_leaderboard, without materializing a window.
        """
        snapshot = await self.get_leaderboard(scope=scope, window_size=0, caller_id=caller_id)
        return snapshot.caller_entry

    def invalidate(self) -> None:
        if self._cache is not None:
            self._cache.invalidate()

    async def _get_board(self, *, scope: PeriodScope, window_size: int) -> RankedBoard:
        cache = self._cache
        if cache is None or not cache.enabled:
            return await self._build_board(scope=scope, window_size=window_size)

        key = (scope, window_size)
        board = cache.get(key)
        if board is not None:
            logger.debug("Leaderboard cache hit scope=%s window=%s", scope.value, window_size)
            return board

        # Misses are single-flight: concurrent callers wait for the first build.
        async with self._build_lock:
            board = cache.get(key)
            if board is not None:
                return board
            generation = cache.generation
            board = await self._build_board(scope=scope, window_size=window_size)
            cache.put(key, board, generation=generation)
            return board

    async def _build_board(self, *, scope: PeriodScope, window_size: int) -> RankedBoard:
        records = await self._aggregator.aggregate(scope)
        board = rank_records(records.values(), scope=scope)
        logger.debug(
            "Leaderboard built scope=%s population=%s window=%s",
            scope.value,
            board.population_size,
            window_size,
        )
        return board
