from __future__ import annotations

import logging
from typing import Any, Optional

import aiosqlite

from src.db.repo.base import Repository
from src.domain.errors import ConflictError, DataUnavailable, NotFound
from src.domain.models import AchievementFact, FactKind
from src.utils.text import normalize_key

logger = logging.getLogger(__name__)


class AchievementsRepository(Repository):
    """
    Achievement facts:
    - Badges earned: user_badges (one row per user+badge, timestamp earned_at)
    - Quest submissions: submissions (any number per user, timestamp created_at)

    Counts are single grouped queries over the fact tables, optionally filtered
    to facts at or after since_ts_utc (SQLite datetime format, UTC).
    """

    # -------------------------
    # Grouped counts (leaderboard reads)
    # -------------------------

    async def count_badges_by_user(self, *, since_ts_utc: Optional[str] = None) -> dict[str, int]:
        return await self._count_by_user(
            what="count_badges_by_user",
            table="user_badges",
            ts_column="earned_at",
            since_ts_utc=since_ts_utc,
        )

    async def count_submissions_by_user(self, *, since_ts_utc: Optional[str] = None) -> dict[str, int]:
        return await self._count_by_user(
            what="count_submissions_by_user",
            table="submissions",
            ts_column="created_at",
            since_ts_utc=since_ts_utc,
        )

    async def _count_by_user(
        self,
        *,
        what: str,
        table: str,
        ts_column: str,
        since_ts_utc: Optional[str],
    ) -> dict[str, int]:
        where = ""
        params: tuple[Any, ...] = ()
        if since_ts_utc is not None:
            where = f"WHERE {ts_column} >= ?"
            params = (since_ts_utc,)

        with self._reading(what):
            rows = await self._db.fetchall(
                f"""
                SELECT user_id, COUNT(*) AS n
                FROM {table}
                {where}
                GROUP BY user_id
                """,
                params,
            )

        out: dict[str, int] = {}
        for r in rows:
            user_id, n = r["user_id"], r["n"]
            if user_id is None or not isinstance(n, int) or n < 0:
                raise DataUnavailable(f"{what}: malformed row user_id={user_id!r} n={n!r}")
            out[str(user_id)] = n
        return out

    async def list_facts_for_user(self, *, user_id: str, limit: int = 5) -> list[AchievementFact]:
        """Most recent facts first."""
        limit = max(1, min(25, int(limit)))

        with self._reading("list_facts_for_user"):
            rows = await self._db.fetchall(
                """
                SELECT kind, occurred_at FROM (
                    SELECT 'badge_earned' AS kind, earned_at AS occurred_at, id
                    FROM user_badges WHERE user_id = ?
                    UNION ALL
                    SELECT 'submission_made' AS kind, created_at AS occurred_at, id
                    FROM submissions WHERE user_id = ?
                )
                ORDER BY occurred_at DESC, kind ASC, id DESC
                LIMIT ?
                """,
                (user_id, user_id, limit),
            )

        return [
            AchievementFact(
                user_id=user_id,
                kind=FactKind(r["kind"]),
                occurred_at=str(r["occurred_at"]),
            )
            for r in rows
        ]

    # -------------------------
    # Writes (store-owned; the ranking engine never calls these)
    # -------------------------

    async def record_badge(
        self,
        *,
        user_id: str,
        badge_key: str,
        badge_name: Optional[str] = None,
        earned_at: Optional[str] = None,
    ) -> AchievementFact:
        """
        Record that user_id earned badge_key. A badge is earned once per user.

        Raises NotFound for unknown profiles and ConflictError for repeats.
        """
        badge_key = normalize_key(badge_key)
        if not badge_key:
            raise ValueError("badge_key must not be empty")
        await self._require_profile(user_id)

        try:
            async with self._db.transaction() as conn:
                await conn.execute(
                    "INSERT OR IGNORE INTO badges (badge_key, name) VALUES (?, ?)",
                    (badge_key, badge_name or badge_key.replace("_", " ").title()),
                )
                await conn.execute(
                    """
                    INSERT INTO user_badges (user_id, badge_key, earned_at)
                    VALUES (?, ?, COALESCE(?, datetime('now')))
                    """,
                    (user_id, badge_key, earned_at),
                )
                cur = await conn.execute(
                    "SELECT earned_at FROM user_badges WHERE user_id = ? AND badge_key = ?",
                    (user_id, badge_key),
                )
                row = await cur.fetchone()
        except aiosqlite.IntegrityError as e:
            raise ConflictError(f"User {user_id} already earned badge {badge_key!r}") from e

        logger.info("Recorded badge=%s for user_id=%s", badge_key, user_id)
        return AchievementFact(user_id=user_id, kind=FactKind.BADGE_EARNED, occurred_at=str(row["earned_at"]))

    async def record_submission(
        self,
        *,
        user_id: str,
        quest_key: str,
        quest_title: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> AchievementFact:
        quest_key = normalize_key(quest_key)
        if not quest_key:
            raise ValueError("quest_key must not be empty")
        await self._require_profile(user_id)

        async with self._db.transaction() as conn:
            await conn.execute(
                "INSERT OR IGNORE INTO quests (quest_key, title) VALUES (?, ?)",
                (quest_key, quest_title or quest_key.replace("_", " ").title()),
            )
            cur = await conn.execute(
                """
                INSERT INTO submissions (user_id, quest_key, created_at)
                VALUES (?, ?, COALESCE(?, datetime('now')))
                """,
                (user_id, quest_key, created_at),
            )
            cur = await conn.execute(
                "SELECT created_at FROM submissions WHERE id = ?",
                (cur.lastrowid,),
            )
            row = await cur.fetchone()

        logger.info("Recorded submission quest=%s for user_id=%s", quest_key, user_id)
        return AchievementFact(user_id=user_id, kind=FactKind.SUBMISSION_MADE, occurred_at=str(row["created_at"]))

    async def _require_profile(self, user_id: str) -> None:
        row = await self._db.fetchone("SELECT 1 FROM profiles WHERE id = ?", (user_id,))
        if not row:
            raise NotFound(f"Profile id={user_id} not found")
