"""
Leaderboard and season endpoints. Clients poll the leaderboard every
`refreshIntervalSeconds`.
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as DBSession

from api.config import get_db
from api.schemas.study_schemas import (
    LeaderboardEntryResponse,
    LeaderboardResponse,
    SeasonListResponse,
    SeasonResponse,
)
from api.schemas.user_schemas import User
from api.services.leaderboard_service import LeaderboardService
from api.utils.auth import get_current_user

leaderboard_routes = APIRouter()


@leaderboard_routes.get("/leaderboard")
def get_leaderboard(
    period: Optional[str] = Query("weekly", description="weekly (or geral), annual, seasonal"),
    year: Optional[int] = Query(None, ge=1, le=9998),
    week: Optional[str] = Query(None, description="ISO week, e.g. 2026-W42 or 42 with year"),
    season_id: Optional[int] = Query(None, alias="seasonId"),
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> LeaderboardResponse:
    board = LeaderboardService(db).query(
        period=period,
        year=year,
        week=week,
        season_id=season_id,
        current_user_id=current_user.id,
    )
    return LeaderboardResponse(
        period_type=board.period_type,
        period_key=board.period_key,
        refresh_interval_seconds=board.refresh_interval_seconds,
        entries=[LeaderboardEntryResponse(**asdict(e)) for e in board.entries],
    )


@leaderboard_routes.get("/seasons")
def list_seasons(
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> SeasonListResponse:
    return SeasonListResponse(
        seasons=[
            SeasonResponse(
                id=int(s.id),
                title=s.title,
                status=s.status,
                starts_at=s.starts_at,
                ends_at=s.ends_at,
                is_ended=bool(s.is_ended),
            )
            for s in LeaderboardService(db).seasons()
        ]
    )
