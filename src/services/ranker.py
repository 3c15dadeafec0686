from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from src.domain.errors import InvalidArgument
from src.domain.models import LeaderboardSnapshot, PeriodScope, RankedEntry, ScoreRecord


def _sort_key(record: ScoreRecord) -> tuple[int, str]:
    return (-record.score, record.user_id)


def check_window_size(window_size: int) -> int:
    # bool is an int subclass; reject it along with everything non-integral
    if isinstance(window_size, bool) or not isinstance(window_size, int):
        raise InvalidArgument(f"window_size must be an int, got {window_size!r}")
    if window_size < 0:
        raise InvalidArgument(f"window_size must be >= 0, got {window_size}")
    return window_size


@dataclass(frozen=True)
class RankedBoard:
    """
    Full ranked population for one scope.

    Built from a single sort; both the window and the caller lookup are read
    from this ordering, so they always agree.
    """

    ranked: tuple[RankedEntry, ...]
    index: Mapping[str, int]
    scope: PeriodScope = PeriodScope.ALL

    @property
    def population_size(self) -> int:
        return len(self.ranked)

    def find(self, user_id: str) -> Optional[RankedEntry]:
        pos = self.index.get(user_id)
        return self.ranked[pos] if pos is not None else None

    def snapshot(self, window_size: int, caller_id: Optional[str] = None) -> LeaderboardSnapshot:
        window_size = check_window_size(window_size)
        caller_entry = self.find(caller_id) if caller_id is not None else None
        return LeaderboardSnapshot(
            entries=self.ranked[:window_size],
            population_size=self.population_size,
            caller_entry=caller_entry,
            scope=self.scope,
            window_size=window_size,
        )


def rank_records(
    records: Iterable[ScoreRecord],
    *,
    scope: PeriodScope = PeriodScope.ALL,
) -> RankedBoard:
    """
    Sort by (score desc, user_id asc) and assign dense 1-based ranks.

    Ties never share a rank: equal scores are split by user_id.
    """
    ordered = sorted(records, key=_sort_key)

    ranked: list[RankedEntry] = []
    index: dict[str, int] = {}
    for pos, record in enumerate(ordered):
        if record.user_id in index:
            raise InvalidArgument(f"duplicate user_id in population: {record.user_id!r}")
        index[record.user_id] = pos
        ranked.append(RankedEntry.from_record(record, rank=pos + 1))

    return RankedBoard(ranked=tuple(ranked), index=index, scope=scope)


def build_snapshot(
    records: Iterable[ScoreRecord],
    window_size: int,
    caller_id: Optional[str] = None,
    *,
    scope: PeriodScope = PeriodScope.ALL,
) -> LeaderboardSnapshot:
    check_window_size(window_size)
    return rank_records(records, scope=scope).snapshot(window_size, caller_id)
