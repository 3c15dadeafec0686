from __future__ import annotations

import asyncio

from src.config.settings import Settings
from src.logging.setup import setup_logging

from src.db.connection import Database
from src.db.migrations import run_migrations

from src.db.repo.profiles_repo import ProfilesRepository
from src.db.repo.achievements_repo import AchievementsRepository
from src.db.repo.leaderboard_posts_repo import LeaderboardPostsRepository

from src.services.aggregator import ScoreAggregator
from src.services.ranking_cache import RankingCache
from src.services.leaderboard_service import LeaderboardService
from src.services.leaderboard_publisher import LeaderboardPublisher, LeaderboardConfig
from src.services.achievement_service import AchievementService

from src.platforms.discord.bot import build_discord_bot


async def main() -> None:
    settings = Settings.load()
    setup_logging(settings)

    # --- DB ---
    db = Database(settings.db_path)
    await db.connect()
    await run_migrations(db)

    # --- Repositories ---
    profiles_repo = ProfilesRepository(db)
    achievements_repo = AchievementsRepository(db)
    leaderboard_posts_repo = LeaderboardPostsRepository(db)

    # --- Ranking engine ---
    aggregator = ScoreAggregator(
        profiles_repo=profiles_repo,
        achievements_repo=achievements_repo,
    )
    leaderboard_service = LeaderboardService(
        aggregator=aggregator,
        cache=RankingCache(ttl_seconds=settings.leaderboard_cache_ttl_seconds),
        default_window_size=settings.leaderboard_window_size,
    )

    # --- Leaderboard panel (Discord channel auto-updates) ---
    leaderboard_publisher = None
    if settings.leaderboard_channel_id:
        leaderboard_publisher = LeaderboardPublisher(
            config=LeaderboardConfig(
                platform="discord",
                channel_id=settings.leaderboard_channel_id,
                window_size=settings.leaderboard_window_size,
                debounce_seconds=10.0,
            ),
            leaderboard=leaderboard_service,
            posts_repo=leaderboard_posts_repo,
        )

    achievement_service = AchievementService(
        profiles_repo=profiles_repo,
        achievements_repo=achievements_repo,
        leaderboard=leaderboard_service,
        leaderboard_publisher=leaderboard_publisher,
    )

    # --- DI container ---
    services = {
        "db": db,
        "profiles_repo": profiles_repo,
        "achievements_repo": achievements_repo,
        "leaderboard": leaderboard_service,
        "leaderboard_publisher": leaderboard_publisher,
        "achievements": achievement_service,
    }

    # --- Discord bot ---
    discord_bot = build_discord_bot(settings=settings, services=services)

    try:
        await discord_bot.start(settings.discord_token)
    finally:
        await db.close()


if __name__ == "__main__":
    asyncio.run(main())
