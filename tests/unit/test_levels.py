"""Level curve."""
import pytest

from progression.levels import level_for_xp, level_progress, xp_for_level, xp_per_level


@pytest.mark.unit
class TestLevelCurve:
    def test_starts_at_level_one(self):
        assert level_for_xp(0) == 1
        assert level_for_xp(-50) == 1

    def test_tier_boundaries(self):
        assert level_for_xp(499) == 1
        assert level_for_xp(500) == 2
        assert level_for_xp(5 * 500) == 6
        assert level_for_xp(5 * 500 + 5 * 750) == 11

    def test_cost_per_tier(self):
        assert xp_per_level(1) == 500
        assert xp_per_level(6) == 750
        assert xp_per_level(11) == 1000
        assert xp_per_level(21) == 1500
        assert xp_per_level(31) == 2000
        assert xp_per_level(99) == 2000

    def test_xp_for_level_matches_level_for_xp(self):
        for level in (2, 5, 10, 20, 30, 45):
            assert level_for_xp(xp_for_level(level)) == level
            assert level_for_xp(xp_for_level(level) - 1) == level - 1

    def test_monotonic(self):
        levels = [level_for_xp(xp) for xp in range(0, 20000, 250)]
        assert levels == sorted(levels)


@pytest.mark.unit
class TestLevelProgress:
    def test_progress_inside_level(self):
        progress = level_progress(620)
        assert progress == {"level": 2, "xp_into_level": 120, "xp_for_next_level": 500}
