"""
Unit test fixtures. Pure engine code; no database or HTTP.
"""
import pytest

from progression.scoring import StarPolicy


@pytest.fixture
def policy():
    """Default scoring: 10 questions, 120s, 8 correct for two stars, 5 for one."""
    return StarPolicy()
