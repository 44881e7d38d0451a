"""Star rating, timer handling and practice XP."""
from dataclasses import replace

import pytest

from progression.scoring import compute_stars, effective_time_spent, is_expired, practice_xp


@pytest.mark.unit
class TestComputeStars:
    def test_three_stars_all_correct_in_time(self, policy):
        assert compute_stars(policy, 10, 10, 90) == 3

    def test_time_limit_is_inclusive(self, policy):
        assert compute_stars(policy, 10, 10, 120) == 3

    def test_all_correct_but_late_is_two_stars(self, policy):
        assert compute_stars(policy, 10, 10, 121) == 2

    def test_two_and_one_star_thresholds(self, policy):
        assert compute_stars(policy, 8, 10, 60) == 2
        assert compute_stars(policy, 7, 10, 60) == 1
        assert compute_stars(policy, 5, 10, 60) == 1
        assert compute_stars(policy, 4, 10, 60) == 0

    def test_six_correct_over_time_is_one_star(self, policy):
        assert compute_stars(policy, 6, 10, 200) == 1

    def test_no_questions_no_stars(self, policy):
        assert compute_stars(policy, 0, 0, 10) == 0

    def test_correct_is_clamped_to_total(self, policy):
        assert compute_stars(policy, 15, 10, 10) == 3

    def test_monotonic_in_correct_answers(self, policy):
        for time_spent in (30, 119, 120, 121, 500):
            stars = [compute_stars(policy, c, 10, time_spent) for c in range(0, 11)]
            assert stars == sorted(stars)

    def test_never_more_stars_for_more_time(self, policy):
        for correct in range(0, 11):
            stars = [compute_stars(policy, correct, 10, t) for t in (0, 60, 120, 121, 300)]
            assert stars == sorted(stars, reverse=True)

    def test_thresholds_scale_for_short_quizzes(self, policy):
        # five questions: two stars from 4 correct, one star from 3
        assert compute_stars(policy, 4, 5, 60) == 2
        assert compute_stars(policy, 3, 5, 60) == 1
        assert compute_stars(policy, 2, 5, 60) == 0

    def test_configurable_thresholds(self, policy):
        strict = replace(policy, two_star_min_correct=9, one_star_min_correct=7)
        assert compute_stars(strict, 8, 10, 60) == 1
        assert compute_stars(strict, 6, 10, 60) == 0


@pytest.mark.unit
class TestTimer:
    def test_client_cannot_report_less_than_server(self):
        assert effective_time_spent(5, 47.2) == 48

    def test_client_may_report_more(self):
        assert effective_time_spent(90, 2.0) == 90

    def test_missing_client_time_uses_server(self):
        assert effective_time_spent(None, 12.1) == 13

    def test_expiry_includes_tolerance(self, policy):
        assert is_expired(policy, 125) is False
        assert is_expired(policy, 125.5) is True


@pytest.mark.unit
class TestPracticeXp:
    def test_pays_only_new_stars(self, policy):
        assert practice_xp(policy, 2, 0) == 20
        assert practice_xp(policy, 3, 2) == 10
        assert practice_xp(policy, 1, 2) == 0
