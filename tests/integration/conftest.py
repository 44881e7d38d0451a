"""
Integration test fixtures. Overrides get_db for API tests with in-memory DB.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


@pytest.fixture(autouse=True)
def fresh_leaderboard_cache():
    from api.services.leaderboard_service import standings_cache
    standings_cache.clear()
    yield
    standings_cache.clear()


@pytest.fixture
def testing_session_local():
    """Session factory over one in-memory database shared by every connection."""
    import api.models  # noqa: F401
    from api.config import Base
    from api.services.achievement_service import AchievementService

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        AchievementService(db).seed_catalog()
    finally:
        db.close()
    return TestingSessionLocal


@pytest.fixture
def override_get_db(testing_session_local):
    def _get_db():
        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def api_client(override_get_db):
    """FastAPI TestClient with in-memory DB override."""
    from fastapi.testclient import TestClient
    from api.api import app
    from api.config import get_db
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded_db(testing_session_local):
    """A session on the API database, for arranging data before requests."""
    db = testing_session_local()
    yield db
    db.close()


@pytest.fixture
def signed_in_client(api_client):
    """Client holding the auth cookie of a freshly registered user."""
    response = api_client.post(
        "/auth/register",
        json={"email": "aluno@example.com", "password": "senha123", "confirm_password": "senha123", "name": "Aluno"},
    )
    assert response.status_code == 201
    api_client.user_id = response.json()["user_id"]
    return api_client
