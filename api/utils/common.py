"""
Common utility functions used across multiple routes and services.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from api.models.models import User as DbUser, StudyProfile
from progression.errors import NotFound


def iso_format(dt: Optional[datetime]) -> Optional[str]:
    """Format a naive UTC datetime as ISO string with Z suffix."""
    if dt is None:
        return None
    return dt.isoformat() + "Z"


def display_name(email: str, preferences: Optional[dict] = None) -> str:
    """Get display name from user preferences or email."""
    prefs = preferences or {}
    name = None
    if isinstance(prefs, dict):
        name = prefs.get("name") or prefs.get("full_name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    # fallback: email prefix
    return email.split("@", 1)[0]


def get_or_create_profile(user_id: int, db: Session) -> StudyProfile:
    """Study profile for a user, created empty on first access."""
    profile = db.query(StudyProfile).filter(StudyProfile.user_id == user_id).first()
    if profile is None:
        if db.get(DbUser, user_id) is None:
            raise NotFound(f"User {user_id} not found")
        profile = StudyProfile(user_id=user_id, total_xp=0, current_level=1, current_streak=0, longest_streak=0)
        db.add(profile)
        db.flush()
    return profile
