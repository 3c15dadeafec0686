from __future__ import annotations

import logging
from typing import Awaitable, Callable

from src.db.connection import Database

logger = logging.getLogger(__name__)


# -----------------------------
# Helpers
# -----------------------------
async def _table_exists(conn, table_name: str) -> bool:
    cursor = await conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?;",
        (table_name,),
    )
    row = await cursor.fetchone()
    return row is not None


async def _column_exists(conn, table: str, column: str) -> bool:
    cursor = await conn.execute(f"PRAGMA table_info({table});")
    rows = await cursor.fetchall()
    return any(r["name"] == column for r in rows)


# -----------------------------
# Migrations
# -----------------------------
async def _migration_v1(conn) -> None:
    """
    Initial schema: profiles, badge catalog, quests and the two fact tables.
    """
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS profiles (
            id TEXT PRIMARY KEY,
            full_name TEXT,
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS badges (
            badge_key TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS user_badges (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            badge_key TEXT NOT NULL,
            earned_at TEXT NOT NULL DEFAULT (datetime('now')),
            UNIQUE(user_id, badge_key),
            FOREIGN KEY(user_id) REFERENCES profiles(id),
            FOREIGN KEY(badge_key) REFERENCES badges(badge_key)
        );
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS quests (
            quest_key TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS submissions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            quest_key TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            FOREIGN KEY(user_id) REFERENCES profiles(id),
            FOREIGN KEY(quest_key) REFERENCES quests(quest_key)
        );
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS leaderboard_posts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            platform TEXT NOT NULL,
            channel_id TEXT NOT NULL,
            board_key TEXT NOT NULL,
            message_id INTEGER NOT NULL,
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now')),
            UNIQUE(platform, channel_id, board_key)
        );
        """
    )


async def _migration_v2(conn) -> None:
    """
    Avatar column on profiles (older databases were created without it).
    """
    if await _table_exists(conn, "profiles"):
        if not await _column_exists(conn, "profiles", "avatar_url"):
            await conn.execute("ALTER TABLE profiles ADD COLUMN avatar_url TEXT;")


async def _migration_v3(conn) -> None:
    """
    Indexes for the grouped per-user counts with a period lower bound.
    """
    await conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_user_badges_earned_user ON user_badges(earned_at, user_id);"
    )
    await conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_submissions_created_user ON submissions(created_at, user_id);"
    )


MIGRATIONS: list[tuple[int, Callable[[object], Awaitable[None]]]] = [
    (1, _migration_v1),
    (2, _migration_v2),
    (3, _migration_v3),
]


# -----------------------------
# Runner
# -----------------------------
async def run_migrations(db: Database) -> None:
    logger.info("Running DB migrations (if needed)")

    async with db.transaction() as conn:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL DEFAULT (datetime('now'))
            );
            """
        )

        cursor = await conn.execute("SELECT MAX(version) AS v FROM schema_migrations;")
        row = await cursor.fetchone()
        current_version = int(row["v"]) if row and row["v"] is not None else 0

        for version, fn in MIGRATIONS:
            if version <= current_version:
                continue

            logger.info("Applying migration v%s", version)
            await fn(conn)
            await conn.execute(
                "INSERT INTO schema_migrations (version) VALUES (?);",
                (version,),
            )

    logger.info("DB migrations complete")
