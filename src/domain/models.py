from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from src.domain.errors import InvalidArgument

BADGE_POINTS = 10
SUBMISSION_POINTS = 2


class PeriodScope(str, Enum):
    ALL = "all"
    MONTH = "month"
    WEEK = "week"


class FactKind(str, Enum):
    BADGE_EARNED = "badge_earned"
    SUBMISSION_MADE = "submission_made"


@dataclass(frozen=True)
class Profile:
    user_id: str
    display_name: str = ""
    avatar_url: str = ""


@dataclass(frozen=True)
class AchievementFact:
    user_id: str
    kind: FactKind
    occurred_at: str


def compute_score(badge_count: int, submission_count: int) -> int:
    return badge_count * BADGE_POINTS + submission_count * SUBMISSION_POINTS


def _check_count(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an int, got {value!r}")
    if value < 0:
        raise InvalidArgument(f"{name} must be >= 0, got {value}")


# -------------------------
# Display tiers
# -------------------------

_TIERS: dict[int, str] = {
    1: "Champion",
    2: "Runner-up",
    3: "Third Place",
}

_MEDALS: dict[int, str] = {
    1: "👑",
    2: "🥈",
    3: "🥉",
}


def tier_for_rank(rank: int) -> Optional[str]:
    return _TIERS.get(rank)


def medal_for_rank(rank: int) -> str:
    return _MEDALS.get(rank, f"#{rank}")


@dataclass(frozen=True)
class ScoreRecord:
    """
    Per-user aggregate of fact counts.

    score is always derived from the counts so it can never drift from them.
    """

    user_id: str
    display_name: str
    badge_count: int = 0
    submission_count: int = 0
    avatar_url: str = ""

    def __post_init__(self) -> None:
        _check_count("badge_count", self.badge_count)
        _check_count("submission_count", self.submission_count)

    @property
    def score(self) -> int:
        return compute_score(self.badge_count, self.submission_count)

    @property
    def verified_submission_count(self) -> int:
        # Every submission counts as verified until a verification predicate exists.
        return self.submission_count


@dataclass(frozen=True)
class RankedEntry:
    user_id: str
    display_name: str
    badge_count: int
    submission_count: int
    rank: int
    avatar_url: str = ""

    def __post_init__(self) -> None:
        _check_count("badge_count", self.badge_count)
        _check_count("submission_count", self.submission_count)
        if isinstance(self.rank, bool) or not isinstance(self.rank, int) or self.rank < 1:
            raise InvalidArgument(f"rank must be a positive int, got {self.rank!r}")

    @classmethod
    def from_record(cls, record: ScoreRecord, *, rank: int) -> "RankedEntry":
        return cls(
            user_id=record.user_id,
            display_name=record.display_name,
            badge_count=record.badge_count,
            submission_count=record.submission_count,
            rank=rank,
            avatar_url=record.avatar_url,
        )

    @property
    def score(self) -> int:
        return compute_score(self.badge_count, self.submission_count)

    @property
    def verified_submission_count(self) -> int:
        return self.submission_count

    @property
    def tier(self) -> Optional[str]:
        return tier_for_rank(self.rank)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
            "badge_count": self.badge_count,
            "submission_count": self.submission_count,
            "verified_submission_count": self.verified_submission_count,
            "score": self.score,
            "rank": self.rank,
            "tier": self.tier,
        }


@dataclass(frozen=True)
class LeaderboardSnapshot:
    """
    Immutable result of one leaderboard query.

    entries is the display window; caller_entry is looked up against the same
    full ordering and is None when the caller has no profile.
    """

    entries: tuple[RankedEntry, ...]
    population_size: int
    caller_entry: Optional[RankedEntry] = None
    scope: PeriodScope = PeriodScope.ALL
    window_size: int = 0

    @property
    def podium(self) -> tuple[RankedEntry, ...]:
        if len(self.entries) < 3:
            return ()
        return self.entries[:3]

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope.value,
            "window_size": self.window_size,
            "population_size": self.population_size,
            "entries": [e.to_dict() for e in self.entries],
            "caller_entry": self.caller_entry.to_dict() if self.caller_entry else None,
        }
