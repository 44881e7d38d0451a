"""Unit tests for common utils (pure functions only; DB-backed ones need integration)."""
from datetime import datetime
import pytest

from api.utils.common import display_name, iso_format


@pytest.mark.unit
class TestIsoFormat:
    def test_appends_z(self):
        dt = datetime(2025, 1, 15, 12, 30, 0)
        result = iso_format(dt)
        assert result == "2025-01-15T12:30:00Z"

    def test_none_passthrough(self):
        assert iso_format(None) is None


@pytest.mark.unit
class TestDisplayName:
    def test_preferences_name(self):
        assert display_name("u@example.com", {"name": "Alice"}) == "Alice"

    def test_preferences_full_name(self):
        assert display_name("u@example.com", {"full_name": "Bob Smith"}) == "Bob Smith"

    def test_fallback_email_prefix(self):
        assert display_name("maria@example.com", None) == "maria"

    def test_blank_name_falls_back(self):
        assert display_name("test@test.com", {"name": "   "}) == "test"
