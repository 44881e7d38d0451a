"""Error kinds and their wire form."""
import pytest

from progression.errors import (
    AlreadyMastered,
    InvalidSubmission,
    LeaderboardUnavailable,
    NotFound,
    NotUnlocked,
    ProgressionError,
    SessionAlreadyClosed,
    SessionExpired,
    Unauthenticated,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "error_cls, kind, status",
    [
        (NotUnlocked, "NotUnlocked", 403),
        (AlreadyMastered, "AlreadyMastered", 409),
        (SessionAlreadyClosed, "SessionAlreadyClosed", 409),
        (SessionExpired, "SessionExpired", 410),
        (NotFound, "NotFound", 404),
        (Unauthenticated, "Unauthenticated", 401),
        (InvalidSubmission, "InvalidSubmission", 422),
        (LeaderboardUnavailable, "LeaderboardUnavailable", 503),
    ],
)
def test_kind_and_status(error_cls, kind, status):
    error = error_cls("boom")
    assert isinstance(error, ProgressionError)
    assert error.kind == kind
    assert error.status_code == status
    assert error.to_dict()["kind"] == kind


@pytest.mark.unit
def test_details_included():
    payload = NotUnlocked("locked", details={"weekId": 3}).to_dict()
    assert payload == {"detail": "locked", "kind": "NotUnlocked", "details": {"weekId": 3}}


@pytest.mark.unit
def test_leaderboard_unavailable_degrades_to_empty():
    payload = LeaderboardUnavailable("down").to_dict()
    assert payload["entries"] == []
    assert payload["retryable"] is True


@pytest.mark.unit
def test_default_message_is_kind():
    assert str(NotFound()) == "NotFound"
