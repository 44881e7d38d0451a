"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides an in-memory database plus a
controllable clock for services.
"""
import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root and src to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# The app lifespan bootstraps against DATABASE_URL; keep it away from the dev database.
os.environ.setdefault("DATABASE_URL", f"sqlite:///{Path(tempfile.gettempdir()) / 'deoglory_test.db'}")

from tests.builders import FakeClock, build_week  # noqa: E402


# ----- In-memory DB (for tests that need DB without touching real DB) -----
@pytest.fixture
def in_memory_engine():
    """Create an in-memory SQLite engine shared across connections."""
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest.fixture
def db_session(in_memory_engine):
    """Create an in-memory database session. Uses api.config.Base for schema."""
    import api.models  # noqa: F401
    from api.config import Base
    Base.metadata.create_all(in_memory_engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 12, 0, 0))


@pytest.fixture
def make_user(db_session):
    """Create a user with an empty study profile."""
    from api.models.models import User
    from api.utils.common import get_or_create_profile

    def _make(email: str = "aluno@example.com", name: str = None) -> User:
        user = User(email=email, hashed_password="x", preferences={"name": name} if name else None)
        db_session.add(user)
        db_session.flush()
        get_or_create_profile(int(user.id), db_session)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def study_week(db_session):
    return build_week(db_session)


@pytest.fixture
def catalog(db_session):
    from api.services.achievement_service import AchievementService
    AchievementService(db_session).seed_catalog()
