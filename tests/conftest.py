"""
Shared fixtures.

Integration fixtures open a fresh on-disk SQLite database per test (under
pytest's tmp_path) and run the real migrations against it.
"""

from __future__ import annotations

from typing import AsyncIterator

import pytest
import pytest_asyncio

from src.db.connection import Database
from src.db.migrations import run_migrations
from src.db.repo.achievements_repo import AchievementsRepository
from src.db.repo.profiles_repo import ProfilesRepository
from src.domain.models import ScoreRecord
from src.services.aggregator import ScoreAggregator
from src.services.leaderboard_service import LeaderboardService


def make_record(user_id: str, badges: int = 0, submissions: int = 0, name: str | None = None) -> ScoreRecord:
    return ScoreRecord(
        user_id=user_id,
        display_name=name or user_id.title(),
        badge_count=badges,
        submission_count=submissions,
    )


@pytest.fixture
def record_factory():
    return make_record


# ============================================================================
# DATABASE FIXTURES (integration)
# ============================================================================


@pytest_asyncio.fixture
async def db(tmp_path) -> AsyncIterator[Database]:
    database = Database(tmp_path / "leaderboard-test.sqlite")
    await database.connect()
    await run_migrations(database)
    yield database
    await database.close()


@pytest.fixture
def profiles_repo(db: Database) -> ProfilesRepository:
    return ProfilesRepository(db)


@pytest.fixture
def achievements_repo(db: Database) -> AchievementsRepository:
    return AchievementsRepository(db)


@pytest.fixture
def aggregator(profiles_repo, achievements_repo) -> ScoreAggregator:
    return ScoreAggregator(profiles_repo=profiles_repo, achievements_repo=achievements_repo)


@pytest.fixture
def leaderboard(aggregator) -> LeaderboardService:
    return LeaderboardService(aggregator=aggregator)


@pytest.fixture
def seed(profiles_repo, achievements_repo):
    """
    Async helper: await seed("alice", badges=2, submissions=5, name="Alice").

    Badges get distinct keys so the one-per-user constraint never trips.
    """

    async def _seed(
        user_id: str,
        *,
        badges: int = 0,
        submissions: int = 0,
        name: str | None = None,
        at: str | None = None,
    ) -> None:
        await profiles_repo.upsert_profile(user_id=user_id, display_name=name if name is not None else user_id.title())
        for i in range(badges):
            await achievements_repo.record_badge(user_id=user_id, badge_key=f"badge_{i}", earned_at=at)
        for i in range(submissions):
            await achievements_repo.record_submission(user_id=user_id, quest_key=f"quest_{i}", created_at=at)

    return _seed
