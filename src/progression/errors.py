"""
Error taxonomy for the study engine.

Every error carries a stable `kind` string that callers can branch on; the HTTP
layer maps kinds to status codes.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ProgressionError(Exception):
    kind: str = "ProgressionError"
    status_code: int = 400

    def __init__(self, message: str = "", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.message, "kind": self.kind}
        if self.details:
            payload["details"] = self.details
        return payload


class NotUnlocked(ProgressionError):
    """Practice or unit requested before its prerequisites are completed."""

    kind = "NotUnlocked"
    status_code = 403


class AlreadyMastered(ProgressionError):
    """Practice re-entry after the week was mastered with 3 stars."""

    kind = "AlreadyMastered"
    status_code = 409


class SessionAlreadyClosed(ProgressionError):
    """Duplicate completion of a practice session."""

    kind = "SessionAlreadyClosed"
    status_code = 409


class SessionExpired(ProgressionError):
    kind = "SessionExpired"
    status_code = 410


class NotFound(ProgressionError):
    kind = "NotFound"
    status_code = 404


class Unauthenticated(ProgressionError):
    kind = "Unauthenticated"
    status_code = 401


class InvalidSubmission(ProgressionError):
    """Client-reported values that cannot belong to the session."""

    kind = "InvalidSubmission"
    status_code = 422


class LeaderboardUnavailable(ProgressionError):
    """Standings could not be computed; the client should retry on its next poll."""

    kind = "LeaderboardUnavailable"
    status_code = 503

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({"entries": [], "retryable": True})
        return payload


__all__ = [
    "ProgressionError",
    "NotUnlocked",
    "AlreadyMastered",
    "SessionAlreadyClosed",
    "SessionExpired",
    "NotFound",
    "Unauthenticated",
    "InvalidSubmission",
    "LeaderboardUnavailable",
]
