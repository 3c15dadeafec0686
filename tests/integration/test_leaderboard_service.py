"""
Integration tests for the inbound leaderboard query and the write path that
invalidates cached rankings.
"""

import asyncio

import pytest

from src.domain.errors import DataUnavailable, InvalidArgument
from src.services.achievement_service import AchievementService, discord_profile_id
from src.services.leaderboard_service import LeaderboardService
from src.services.ranking_cache import RankingCache


class CountingAggregator:
    """Wraps the real aggregator and counts store round-trips."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.calls = 0

    async def aggregate(self, scope, **kwargs):
        self.calls += 1
        return await self.inner.aggregate(scope, **kwargs)


@pytest.fixture
def counting(aggregator) -> CountingAggregator:
    return CountingAggregator(aggregator)


@pytest.fixture
def cached_leaderboard(counting) -> LeaderboardService:
    return LeaderboardService(aggregator=counting, cache=RankingCache(ttl_seconds=300))


@pytest.fixture
def achievements(profiles_repo, achievements_repo, cached_leaderboard) -> AchievementService:
    return AchievementService(
        profiles_repo=profiles_repo,
        achievements_repo=achievements_repo,
        leaderboard=cached_leaderboard,
    )


@pytest.mark.integration
@pytest.mark.asyncio
class TestGetLeaderboard:
    async def test_end_to_end(self, seed, leaderboard):
        await seed("alice", badges=2, submissions=5)
        await seed("bob")
        await seed("carol", badges=5, submissions=1)

        snapshot = await leaderboard.get_leaderboard(scope="all", window_size=2, caller_id="bob")

        assert [(e.user_id, e.rank, e.score) for e in snapshot.entries] == [("carol", 1, 52), ("alice", 2, 30)]
        assert snapshot.caller_entry is not None
        assert (snapshot.caller_entry.user_id, snapshot.caller_entry.score, snapshot.caller_entry.rank) == ("bob", 0, 3)
        assert snapshot.population_size == 3

    async def test_default_window(self, seed, aggregator):
        for i in range(12):
            await seed(f"u{i:02d}", submissions=i)
        service = LeaderboardService(aggregator=aggregator, default_window_size=10)

        snapshot = await service.get_leaderboard()

        assert len(snapshot.entries) == 10
        assert snapshot.population_size == 12

    async def test_caller_without_profile(self, seed, leaderboard):
        await seed("alice", badges=1)

        snapshot = await leaderboard.get_leaderboard(caller_id="newcomer")

        assert snapshot.caller_entry is None

    async def test_get_rank(self, seed, leaderboard):
        await seed("alice", badges=1)
        await seed("bob", badges=2)

        entry = await leaderboard.get_rank(caller_id="alice")

        assert entry.rank == 2
        assert entry.score == 10

    async def test_invalid_arguments(self, leaderboard):
        with pytest.raises(InvalidArgument):
            await leaderboard.get_leaderboard(window_size=-1)
        with pytest.raises(InvalidArgument):
            await leaderboard.get_leaderboard(scope="fortnight")

    async def test_store_failure_propagates(self, db, seed, leaderboard):
        await seed("alice", badges=1)
        await db.execute("ALTER TABLE profiles RENAME TO profiles_moved")

        with pytest.raises(DataUnavailable):
            await leaderboard.get_leaderboard()


@pytest.mark.integration
@pytest.mark.asyncio
class TestCaching:
    async def test_cache_hit_skips_store(self, seed, cached_leaderboard, counting):
        await seed("alice", badges=1)
        await seed("bob")

        first = await cached_leaderboard.get_leaderboard(window_size=10, caller_id="alice")
        second = await cached_leaderboard.get_leaderboard(window_size=10, caller_id="bob")

        assert counting.calls == 1
        assert first.entries == second.entries
        assert second.caller_entry.user_id == "bob"

    async def test_concurrent_misses_build_once(self, seed, cached_leaderboard, counting):
        await seed("alice", badges=1)
        await seed("bob")

        snapshots = await asyncio.gather(
            cached_leaderboard.get_leaderboard(window_size=10, caller_id="alice"),
            cached_leaderboard.get_leaderboard(window_size=10, caller_id="bob"),
            cached_leaderboard.get_rank(caller_id="bob"),
        )

        assert counting.calls == 2
        assert snapshots[0].entries == snapshots[1].entries
        assert snapshots[1].caller_entry.rank == snapshots[2].rank == 2

    async def test_window_size_is_part_of_key(self, seed, cached_leaderboard, counting):
        await seed("alice")

        await cached_leaderboard.get_leaderboard(window_size=10)
        await cached_leaderboard.get_leaderboard(window_size=5)

        assert counting.calls == 2

    async def test_recording_a_fact_invalidates(self, achievements, cached_leaderboard, counting):
        await achievements.register_discord_profile(discord_user_id=1, display_name="One")
        await achievements.register_discord_profile(discord_user_id=2, display_name="Two")
        before = await cached_leaderboard.get_leaderboard(window_size=10)

        await achievements.award_badge_discord(discord_user_id=2, badge_key="pioneer")
        after = await cached_leaderboard.get_leaderboard(window_size=10)

        assert counting.calls == 2
        assert before.entries[0].user_id == discord_profile_id(1)
        assert after.entries[0].user_id == discord_profile_id(2)
        assert after.entries[0].score == 10

    async def test_failures_are_not_cached(self, db, seed, cached_leaderboard, counting):
        await seed("alice")
        await db.execute("ALTER TABLE submissions RENAME TO submissions_moved")

        with pytest.raises(DataUnavailable):
            await cached_leaderboard.get_leaderboard()

        await db.execute("ALTER TABLE submissions_moved RENAME TO submissions")
        snapshot = await cached_leaderboard.get_leaderboard()

        assert snapshot.population_size == 1
        assert counting.calls == 2


@pytest.mark.integration
@pytest.mark.asyncio
class TestAchievementService:
    async def test_submit_creates_profile(self, achievements, cached_leaderboard):
        await achievements.submit_quest_discord(discord_user_id=42, quest_key="Trail Map", display_name="Ranger")

        entry = await cached_leaderboard.get_rank(caller_id=discord_profile_id(42))

        assert entry.display_name == "Ranger"
        assert entry.submission_count == 1
        assert entry.score == 2

    async def test_recent_facts(self, achievements):
        await achievements.submit_quest_discord(discord_user_id=7, quest_key="q1")
        await achievements.award_badge_discord(discord_user_id=7, badge_key="b1")

        facts = await achievements.recent_facts_discord(discord_user_id=7)

        assert len(facts) == 2
