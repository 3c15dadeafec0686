from __future__ import annotations

import logging

from src.db.repo.base import Repository
from src.domain.errors import DataUnavailable, NotFound
from src.domain.models import Profile

logger = logging.getLogger(__name__)


class ProfilesRepository(Repository):
    """
    Profiles are the population of the leaderboard: every profile gets a rank,
    even with zero facts.
    """

    # -------------------------
    # Fetching
    # -------------------------

    async def list_profiles(self) -> list[Profile]:
        with self._reading("list_profiles"):
            rows = await self._db.fetchall(
                """
                SELECT id, full_name, avatar_url
                FROM profiles
                ORDER BY id ASC
                """
            )

        profiles: list[Profile] = []
        for r in rows:
            if r["id"] is None:
                raise DataUnavailable("list_profiles: profile row without id")
            profiles.append(self._row_to_profile(r))
        return profiles

    async def get_profile(self, user_id: str) -> Profile:
        with self._reading("get_profile"):
            row = await self._db.fetchone(
                """
                SELECT id, full_name, avatar_url
                FROM profiles
                WHERE id = ?
                """,
                (user_id,),
            )
        if not row:
            raise NotFound(f"Profile id={user_id} not found")
        return self._row_to_profile(row)

    # -------------------------
    # Creation / update
    # -------------------------

    async def upsert_profile(
        self,
        *,
        user_id: str,
        display_name: str | None,
        avatar_url: str | None = None,
    ) -> Profile:
        """
        Create the profile, or refresh its name/avatar if it already exists.
        None leaves the stored value untouched.
        """
        await self._db.execute(
            """
            INSERT INTO profiles (id, full_name, avatar_url)
            VALUES (?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                full_name = COALESCE(excluded.full_name, profiles.full_name),
                avatar_url = COALESCE(excluded.avatar_url, profiles.avatar_url),
                updated_at = datetime('now')
            """,
            (user_id, display_name, avatar_url),
        )
        logger.info("Upserted profile id=%s", user_id)
        return await self.get_profile(user_id)

    # -------------------------
    # Mapping
    # -------------------------

    @staticmethod
    def _row_to_profile(row) -> Profile:
        return Profile(
            user_id=str(row["id"]),
            display_name=row["full_name"] or "",
            avatar_url=row["avatar_url"] or "",
        )
