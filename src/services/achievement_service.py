from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from src.db.repo.achievements_repo import AchievementsRepository
from src.db.repo.profiles_repo import ProfilesRepository
from src.domain.models import AchievementFact, Profile
from src.services.leaderboard_service import LeaderboardService

if TYPE_CHECKING:
    from src.services.leaderboard_publisher import LeaderboardPublisher

logger = logging.getLogger(__name__)


def discord_profile_id(discord_user_id: int) -> str:
    return f"discord:{int(discord_user_id)}"


class AchievementService:
    """
    Write path of the achievement store (profiles, badges, submissions).

    Every recorded fact invalidates cached rankings and triggers a debounced
    refresh of the published leaderboard panel.
    """

    def __init__(
        self,
        *,
        profiles_repo: ProfilesRepository,
        achievements_repo: AchievementsRepository,
        leaderboard: LeaderboardService,
        leaderboard_publisher: Optional["LeaderboardPublisher"] = None,
    ) -> None:
        self._profiles_repo = profiles_repo
        self._achievements_repo = achievements_repo
        self._leaderboard = leaderboard
        self._publisher = leaderboard_publisher

    async def register_discord_profile(
        self,
        *,
        discord_user_id: int,
        display_name: str | None,
        avatar_url: str | None = None,
    ) -> Profile:
        profile = await self._profiles_repo.upsert_profile(
            user_id=discord_profile_id(discord_user_id),
            display_name=display_name,
            avatar_url=avatar_url,
        )
        # New profiles join the population with a score of zero
        self._facts_changed()
        return profile

    async def award_badge_discord(
        self,
        *,
        discord_user_id: int,
        badge_key: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> AchievementFact:
        """Raises ConflictError if the member already holds the badge."""
        profile = await self.register_discord_profile(
            discord_user_id=discord_user_id,
            display_name=display_name,
            avatar_url=avatar_url,
        )
        fact = await self._achievements_repo.record_badge(user_id=profile.user_id, badge_key=badge_key)
        self._facts_changed()
        return fact

    async def submit_quest_discord(
        self,
        *,
        discord_user_id: int,
        quest_key: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> AchievementFact:
        profile = await self.register_discord_profile(
            discord_user_id=discord_user_id,
            display_name=display_name,
            avatar_url=avatar_url,
        )
        fact = await self._achievements_repo.record_submission(user_id=profile.user_id, quest_key=quest_key)
        self._facts_changed()
        return fact

    async def recent_facts_discord(self, *, discord_user_id: int, limit: int = 5) -> list[AchievementFact]:
        return await self._achievements_repo.list_facts_for_user(
            user_id=discord_profile_id(discord_user_id),
            limit=limit,
        )

    def _facts_changed(self) -> None:
        self._leaderboard.invalidate()

        if self._publisher:
            try:
                self._publisher.schedule_refresh()
            except Exception:
                logger.exception("Failed scheduling leaderboard refresh")
