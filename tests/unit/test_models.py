"""Unit tests for score records, ranked entries, tiers and snapshot shaping."""

import dataclasses

import pytest

from src.domain.errors import InvalidArgument
from src.domain.models import (
    LeaderboardSnapshot,
    PeriodScope,
    RankedEntry,
    ScoreRecord,
    compute_score,
    medal_for_rank,
    tier_for_rank,
)
from src.services.ranker import build_snapshot
from src.utils.text import normalize_display_name, normalize_key
from tests.conftest import make_record


class TestScore:
    @pytest.mark.parametrize(
        "badges,submissions,expected",
        [(0, 0, 0), (1, 0, 10), (0, 1, 2), (3, 7, 44), (5, 1, 52)],
    )
    def test_formula(self, badges, submissions, expected):
        assert compute_score(badges, submissions) == expected

    def test_score_follows_counts(self):
        record = ScoreRecord(user_id="u", display_name="U", badge_count=2, submission_count=5)
        updated = dataclasses.replace(record, submission_count=6)

        assert record.score == 30
        assert updated.score == 32

    def test_records_are_frozen(self):
        record = make_record("u")
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.badge_count = 9  # type: ignore[misc]

    def test_verified_submissions_pass_through(self):
        record = make_record("u", submissions=4)
        assert record.verified_submission_count == 4


class TestCountValidation:
    @pytest.mark.parametrize(
        "field,value",
        [("badge_count", -3), ("submission_count", -1), ("badge_count", 1.5), ("submission_count", "2"), ("badge_count", True)],
    )
    def test_bad_counts_rejected(self, field, value):
        with pytest.raises(InvalidArgument):
            ScoreRecord(user_id="u", display_name="U", **{field: value})

    def test_negative_count_never_reaches_the_ranker(self):
        with pytest.raises(InvalidArgument):
            build_snapshot([ScoreRecord(user_id="a", display_name="A", badge_count=-3)], 5)

    def test_replace_is_validated(self):
        record = make_record("u", badges=1)
        with pytest.raises(InvalidArgument):
            dataclasses.replace(record, submission_count=-2)

    @pytest.mark.parametrize("rank", [0, -1])
    def test_entry_rank_must_be_positive(self, rank):
        with pytest.raises(InvalidArgument):
            RankedEntry.from_record(make_record("u"), rank=rank)

    def test_entry_counts_checked(self):
        with pytest.raises(InvalidArgument):
            RankedEntry(user_id="u", display_name="U", badge_count=0, submission_count=-4, rank=1)


class TestTiers:
    @pytest.mark.parametrize(
        "rank,tier",
        [(1, "Champion"), (2, "Runner-up"), (3, "Third Place"), (4, None), (500, None)],
    )
    def test_tier_for_rank(self, rank, tier):
        assert tier_for_rank(rank) == tier

    def test_entry_tier_is_derived_from_rank(self):
        record = make_record("u", badges=1)
        assert RankedEntry.from_record(record, rank=1).tier == "Champion"
        assert RankedEntry.from_record(record, rank=4).tier is None

    def test_medals(self):
        assert medal_for_rank(1) == "👑"
        assert medal_for_rank(3) == "🥉"
        assert medal_for_rank(12) == "#12"


class TestDisplayNames:
    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank_falls_back_to_anonymous(self, raw):
        assert normalize_display_name(raw) == "Anonymous"

    def test_name_is_trimmed(self):
        assert normalize_display_name("  Ada ") == "Ada"

    def test_normalize_key(self):
        assert normalize_key("  First-Steps Quest ") == "first_steps_quest"


class TestSnapshot:
    def test_podium_needs_three_entries(self):
        two = build_snapshot([make_record("a"), make_record("b")], window_size=10)
        three = build_snapshot([make_record("a"), make_record("b"), make_record("c")], window_size=10)

        assert two.podium == ()
        assert [e.rank for e in three.podium] == [1, 2, 3]

    def test_snapshot_is_frozen(self):
        snapshot = LeaderboardSnapshot(entries=(), population_size=0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.population_size = 3  # type: ignore[misc]

    def test_to_dict_field_names(self):
        snapshot = build_snapshot(
            [make_record("alice", badges=2, submissions=5, name="Alice"), make_record("bob")],
            window_size=1,
            caller_id="bob",
            scope=PeriodScope.MONTH,
        )

        doc = snapshot.to_dict()

        assert doc["scope"] == "month"
        assert doc["population_size"] == 2
        assert doc["window_size"] == 1
        assert doc["entries"] == [
            {
                "user_id": "alice",
                "display_name": "Alice",
                "avatar_url": "",
                "badge_count": 2,
                "submission_count": 5,
                "verified_submission_count": 5,
                "score": 30,
                "rank": 1,
                "tier": "Champion",
            }
        ]
        assert doc["caller_entry"]["user_id"] == "bob"
        assert doc["caller_entry"]["rank"] == 2
        assert doc["caller_entry"]["tier"] == "Runner-up"

    def test_to_dict_absent_caller(self):
        snapshot = build_snapshot([make_record("a")], window_size=1, caller_id="ghost")
        assert snapshot.to_dict()["caller_entry"] is None
