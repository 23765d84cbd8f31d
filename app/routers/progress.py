"""Progress tracking endpoints."""

from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.core.database import get_db
from app.core.dependencies import get_current_user, ensure_can_view, ensure_is_self, is_admin
from app.progress.progress_engine import ProgressEngine
from app.schemas.progress import (
    ProgressView, ChallengeActionResult, PositionUpdate, RoadmapProgressSummary
)

logger = structlog.get_logger()
router = APIRouter()


@router.get("/{user_id}", response_model=List[RoadmapProgressSummary])
async def list_user_progress(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a completion summary for every roadmap the user has started."""
    ensure_can_view(current_user, user_id)
    engine = ProgressEngine(db, include_private=is_admin(current_user))
    return await engine.list_user_progress(user_id)


@router.get("/{user_id}/roadmaps/{roadmap_id}", response_model=ProgressView)
async def get_roadmap_progress(
    user_id: str,
    roadmap_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get progress on a roadmap, creating the record on first access."""
    ensure_can_view(current_user, user_id)
    engine = ProgressEngine(db, include_private=is_admin(current_user))
    return await engine.get_progress_view(user_id, roadmap_id)


@router.post(
    "/{user_id}/roadmaps/{roadmap_id}/challenges/{challenge_id}/complete",
    response_model=ChallengeActionResult
)
async def complete_challenge(
    user_id: str,
    roadmap_id: UUID,
    challenge_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark a challenge as completed."""
    ensure_is_self(current_user, user_id)
    engine = ProgressEngine(db, include_private=is_admin(current_user))
    return await engine.complete_challenge(user_id, roadmap_id, str(challenge_id))


@router.delete(
    "/{user_id}/roadmaps/{roadmap_id}/challenges/{challenge_id}/complete",
    response_model=ChallengeActionResult
)
async def reopen_challenge(
    user_id: str,
    roadmap_id: UUID,
    challenge_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Undo a challenge completion."""
    ensure_is_self(current_user, user_id)
    engine = ProgressEngine(db, include_private=is_admin(current_user))
    return await engine.reopen_challenge(user_id, roadmap_id, str(challenge_id))


@router.put("/{user_id}/roadmaps/{roadmap_id}/position", response_model=ProgressView)
async def set_position(
    user_id: str,
    roadmap_id: UUID,
    position: PositionUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Move the current level and milestone pointers."""
    ensure_is_self(current_user, user_id)
    engine = ProgressEngine(db, include_private=is_admin(current_user))
    milestone_id = str(position.current_milestone_id) if position.current_milestone_id else None
    return await engine.set_position(user_id, roadmap_id, str(position.current_level_id), milestone_id)
