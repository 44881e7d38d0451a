"""Achievement requirements and evaluation."""
import pytest

from progression.achievements import (
    DEFAULT_CATALOG,
    AchievementDefinition,
    ProgressStats,
    evaluate,
    requirement_met,
)


@pytest.mark.unit
class TestRequirementMet:
    def test_all_keys_must_hold(self):
        stats = ProgressStats(current_streak=7, lessons_completed=2)
        assert requirement_met({"streak": 7}, stats) is True
        assert requirement_met({"streak": 7, "lessons": 3}, stats) is False

    def test_days_is_a_streak_alias(self):
        assert requirement_met({"days": 7}, ProgressStats(current_streak=7)) is True
        assert requirement_met({"days": 7}, ProgressStats(current_streak=6)) is False

    def test_unknown_key_never_unlocks(self):
        assert requirement_met({"prayers": 1}, ProgressStats()) is False

    def test_empty_requirement_never_unlocks(self):
        assert requirement_met({}, ProgressStats(lessons_completed=100)) is False
        assert requirement_met(None, ProgressStats()) is False

    def test_non_numeric_minimum(self):
        assert requirement_met({"streak": "7"}, ProgressStats(current_streak=10)) is False


@pytest.mark.unit
class TestEvaluate:
    def test_unlocks_satisfied_only(self):
        result = evaluate(DEFAULT_CATALOG, ProgressStats(lessons_completed=1, current_streak=3, total_xp=20), set())
        codes = {d.code for d in result.unlocked}
        # 20 + 50 + 30 reaches 100 XP, which unlocks xp_100 in the next round
        assert codes == {"first_lesson", "streak_3", "xp_100"}
        assert result.xp_awarded == 105

    def test_already_unlocked_skipped(self):
        result = evaluate(DEFAULT_CATALOG, ProgressStats(lessons_completed=1), {"first_lesson"})
        assert result.unlocked == []
        assert result.xp_awarded == 0

    def test_rewards_chain_into_xp_achievements(self):
        catalog = [
            AchievementDefinition("a", "A", "lessons", {"lessons": 1}, xp_reward=10),
            AchievementDefinition("b", "B", "xp", {"xp": 100}, xp_reward=0),
        ]
        result = evaluate(catalog, ProgressStats(lessons_completed=1, total_xp=95), set())
        assert [d.code for d in result.unlocked] == ["a", "b"]
        assert result.stats.total_xp == 105

    def test_order_independent(self):
        stats = ProgressStats(lessons_completed=5, perfect_lessons=1, total_xp=480)
        forward = evaluate(DEFAULT_CATALOG, stats, set())
        backward = evaluate(list(reversed(DEFAULT_CATALOG)), stats, set())
        assert {d.code for d in forward.unlocked} == {d.code for d in backward.unlocked}

    def test_idempotent(self):
        stats = ProgressStats(lessons_completed=10)
        first = evaluate(DEFAULT_CATALOG, stats, set())
        second = evaluate(DEFAULT_CATALOG, first.stats, {d.code for d in first.unlocked})
        assert second.unlocked == []


@pytest.mark.unit
def test_catalog_codes_unique():
    codes = [d.code for d in DEFAULT_CATALOG]
    assert len(codes) == len(set(codes))


def _thresholds(category, key):
    return sorted(d.requirement[key] for d in DEFAULT_CATALOG if d.category == category)


@pytest.mark.unit
class TestDefaultCatalog:
    def test_milestones(self):
        assert _thresholds("lessons", "lessons") == [1, 3, 5, 10, 15, 25, 50, 75, 100, 150, 200, 365]
        assert _thresholds("streak", "streak") == [3, 5, 7, 14, 21, 30, 45, 60, 90, 120, 150, 180, 270, 365, 500]
        assert _thresholds("xp", "xp") == [100, 250, 500, 1000, 2500, 5000, 10000, 25000, 50000, 100000]
        assert _thresholds("level", "level") == [3, 5, 10, 15, 20, 25, 50, 100]

    def test_rewards(self):
        by_code = {d.code: d for d in DEFAULT_CATALOG}
        assert by_code["first_lesson"].xp_reward == 50
        assert by_code["streak_500"].xp_reward == 7500
        assert by_code["perfect_lesson"].xp_reward == 25

    def test_every_requirement_uses_a_known_stat(self):
        for d in DEFAULT_CATALOG:
            assert all(ProgressStats().value(key) is not None for key in d.requirement), d.code

    def test_night_owl(self):
        result = evaluate(DEFAULT_CATALOG, ProgressStats(night_study=1), set())
        assert [d.code for d in result.unlocked] == ["night_owl"]
