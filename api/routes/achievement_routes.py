from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as DBSession

from api.config import get_db
from api.schemas.study_schemas import AchievementListResponse, AchievementResponse
from api.schemas.user_schemas import User
from api.services.achievement_service import AchievementService
from api.utils.auth import get_current_user

achievement_routes = APIRouter()


@achievement_routes.get("/achievements")
def list_achievements(
    limit: Optional[int] = Query(None, ge=1, le=100, description="Only the most recent unlocks, newest first"),
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> AchievementListResponse:
    service = AchievementService(db)
    items = service.list_for_user(current_user.id, limit=limit)
    return AchievementListResponse(
        achievements=[AchievementResponse(**item) for item in items],
        unlocked_count=service.unlocked_count(current_user.id),
        total_count=len(service.catalog()),
    )
