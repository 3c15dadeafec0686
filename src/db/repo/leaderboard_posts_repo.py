from __future__ import annotations

from typing import Optional

from src.db.repo.base import Repository


class LeaderboardPostsRepository(Repository):
    """
    Remembers which channel message holds the published leaderboard panel,
    so a restart edits the same message instead of posting a new one.
    """

    async def get_message_id(self, *, platform: str, channel_id: str, board_key: str) -> Optional[int]:
        row = await self._db.fetchone(
            """
            SELECT message_id
            FROM leaderboard_posts
            WHERE platform = ? AND channel_id = ? AND board_key = ?
            """,
            (platform, channel_id, board_key),
        )
        return int(row["message_id"]) if row else None

    async def upsert_message_id(self, *, platform: str, channel_id: str, board_key: str, message_id: int) -> None:
        await self._db.execute(
            """
            INSERT INTO leaderboard_posts (platform, channel_id, board_key, message_id, updated_at)
            VALUES (?, ?, ?, ?, datetime('now'))
            ON CONFLICT(platform, channel_id, board_key)
            DO UPDATE SET message_id = excluded.message_id, updated_at = datetime('now')
            """,
            (platform, channel_id, board_key, int(message_id)),
        )

    async def forget(self, *, platform: str, channel_id: str, board_key: str) -> bool:
        deleted = await self._db.execute(
            "DELETE FROM leaderboard_posts WHERE platform = ? AND channel_id = ? AND board_key = ?",
            (platform, channel_id, board_key),
        )
        return deleted > 0
