"""
Practice session model: one row per attempt, kept as the result history.
"""

from api.config import Base
from sqlalchemy import Boolean, Column, String, Integer, JSON, DateTime, ForeignKey, Index, Enum as SQLEnum, text
from sqlalchemy.orm import relationship
from datetime import datetime

from progression.practice import PracticeStatus


class PracticeSession(Base):
    """
    A timed practice attempt for (user, week).

    Contains:
    - the question snapshot taken at start (fixed order)
    - server-side start time; the clock is re-derived from it on completion
    - graded answers and, once closed, the result
    """
    __tablename__ = "practice_sessions"
    __table_args__ = (
        # At most one running attempt per (user, week).
        Index(
            "uq_practice_running",
            "user_id",
            "week_id",
            unique=True,
            sqlite_where=text("status = 'RUNNING'"),
            postgresql_where=text("status = 'RUNNING'"),
        ),
    )

    id = Column(String, primary_key=True, index=True)  # uuid
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    week_id = Column(Integer, ForeignKey("study_weeks.id"), index=True, nullable=False)
    status = Column(SQLEnum(PracticeStatus), default=PracticeStatus.RUNNING, nullable=False, index=True)

    question_ids = Column(JSON, nullable=False)  # list[int]
    time_limit_seconds = Column(Integer, nullable=False)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)

    answers = Column(JSON, nullable=True)  # {question_id: is_correct}

    # Result, filled when the session closes
    stars_earned = Column(Integer, nullable=True)
    correct_answers = Column(Integer, nullable=True)
    time_spent_seconds = Column(Integer, nullable=True)
    completed_within_time = Column(Boolean, nullable=True)
    is_mastered = Column(Boolean, default=False, nullable=False)
    xp_awarded = Column(Integer, default=0, nullable=False)

    user = relationship("User", backref="practice_sessions", foreign_keys=[user_id])
    week = relationship("StudyWeek", foreign_keys=[week_id])
