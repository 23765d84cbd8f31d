"""Gamification endpoints."""

from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.core.database import get_db
from app.core.dependencies import get_current_user, ensure_can_view, is_admin
from app.gamification.achievements import ACHIEVEMENTS
from app.progress.progress_engine import ProgressEngine
from app.schemas.gamification import AchievementResponse, AchievementStatusList

logger = structlog.get_logger()
router = APIRouter()


@router.get("/achievements", response_model=List[AchievementResponse])
async def list_achievements():
    """Get all available achievements."""
    return [
        {"id": rule.id, "title": rule.title, "description": rule.description}
        for rule in ACHIEVEMENTS
    ]


@router.get("/achievements/{user_id}/roadmaps/{roadmap_id}", response_model=AchievementStatusList)
async def get_achievement_status(
    user_id: str,
    roadmap_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get every achievement with the user's unlock status on a roadmap."""
    ensure_can_view(current_user, user_id)

    engine = ProgressEngine(db, include_private=is_admin(current_user))
    progress, _ = await engine.get_or_create_progress(user_id, roadmap_id)
    earned = set(progress.achievements or [])

    return {
        "user_id": user_id,
        "roadmap_id": roadmap_id,
        "achievements": [
            {
                "id": rule.id,
                "title": rule.title,
                "description": rule.description,
                "unlocked": rule.id in earned
            }
            for rule in ACHIEVEMENTS
        ]
    }
