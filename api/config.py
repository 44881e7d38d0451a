from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from progression.scoring import StarPolicy

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    APP_NAME: str = "DeoGlory Study"
    DATABASE_URL: str = "sqlite:///./deoglory.db"

    # Security
    SECRET_KEY: str = "your-secret-key-here-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Calendar days for streaks, e.g. "America/Sao_Paulo"
    STUDY_TIMEZONE: str = "UTC"

    # Practice ("Pratique")
    PRACTICE_TIME_LIMIT_SECONDS: int = 120
    PRACTICE_QUESTION_COUNT: int = 10
    PRACTICE_TWO_STAR_MIN_CORRECT: int = 8
    PRACTICE_ONE_STAR_MIN_CORRECT: int = 5
    PRACTICE_TIME_TOLERANCE_SECONDS: int = 5
    PRACTICE_XP_PER_STAR: int = 10
    PRACTICE_MASTERY_BONUS_XP: int = 50

    PERFECT_LESSON_BONUS_XP: int = 5

    # Leaderboard
    LEADERBOARD_REFRESH_SECONDS: float = 5.0
    LEADERBOARD_LIMIT: int = 50

    # Presence
    PRESENCE_TIMEOUT_SECONDS: float = 45.0
    PRESENCE_SWEEP_SECONDS: float = 15.0
    PRESENCE_MAX_ENTRIES: int = 10_000

    def star_policy(self) -> StarPolicy:
        return StarPolicy(
            time_limit_seconds=self.PRACTICE_TIME_LIMIT_SECONDS,
            question_count=self.PRACTICE_QUESTION_COUNT,
            two_star_min_correct=self.PRACTICE_TWO_STAR_MIN_CORRECT,
            one_star_min_correct=self.PRACTICE_ONE_STAR_MIN_CORRECT,
            time_tolerance_seconds=self.PRACTICE_TIME_TOLERANCE_SECONDS,
            xp_per_star=self.PRACTICE_XP_PER_STAR,
            mastery_bonus_xp=self.PRACTICE_MASTERY_BONUS_XP,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def _connect_args(url: str) -> dict:
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


settings = get_settings()
engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def reset_db():
    Base.metadata.drop_all(bind=engine)
    print("Database dropped")
    create_db()


def create_db():
    # Models register themselves on Base when imported.
    import api.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
