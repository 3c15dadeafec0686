from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.db.repo.achievements_repo import AchievementsRepository
from src.db.repo.profiles_repo import ProfilesRepository
from src.domain.errors import DataUnavailable
from src.domain.models import PeriodScope, ScoreRecord
from src.services.scopes import since_for_scope
from src.utils.text import normalize_display_name

logger = logging.getLogger(__name__)


class ScoreAggregator:
    """
    Reduces raw achievement facts into one ScoreRecord per profile.

    Three bulk reads (profiles, badge counts, submission counts) are issued
    concurrently; each count is one grouped query, never a per-user round-trip.
    The reads are not transactionally consistent with each other: a fact
    landing between them may show up in one count only for that query.
    """

    def __init__(
        self,
        *,
        profiles_repo: ProfilesRepository,
        achievements_repo: AchievementsRepository,
    ) -> None:
        self._profiles_repo = profiles_repo
        self._achievements_repo = achievements_repo

    async def aggregate(
        self,
        scope: PeriodScope = PeriodScope.ALL,
        *,
        since_ts_utc: Optional[str] = None,
    ) -> dict[str, ScoreRecord]:
        """
        Returns {user_id: ScoreRecord} for every known profile, ordered by user_id.

        since_ts_utc overrides the lower bound derived from scope (used to pin
        "now" in tests). Raises DataUnavailable if any read fails.
        """
        since = since_ts_utc if since_ts_utc is not None else since_for_scope(scope)

        profiles, badge_counts, submission_counts = await asyncio.gather(
            self._profiles_repo.list_profiles(),
            self._achievements_repo.count_badges_by_user(since_ts_utc=since),
            self._achievements_repo.count_submissions_by_user(since_ts_utc=since),
        )

        records: dict[str, ScoreRecord] = {}
        for profile in sorted(profiles, key=lambda p: p.user_id):
            if profile.user_id in records:
                raise DataUnavailable(f"aggregate: duplicate profile id {profile.user_id!r}")
            records[profile.user_id] = ScoreRecord(
                user_id=profile.user_id,
                display_name=normalize_display_name(profile.display_name),
                badge_count=badge_counts.get(profile.user_id, 0),
                submission_count=submission_counts.get(profile.user_id, 0),
                avatar_url=profile.avatar_url,
            )

        orphans = (set(badge_counts) | set(submission_counts)) - set(records)
        if orphans:
            logger.debug("Ignoring facts for %s user id(s) without a profile", len(orphans))

        logger.debug(
            "Aggregated %s profiles (scope=%s since=%s)",
            len(records),
            scope.value,
            since or "-",
        )
        return records
