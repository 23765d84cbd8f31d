"""Roadmap catalog endpoints."""

from typing import List, Optional, Dict, Any
from uuid import UUID
from aiocache import Cache
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_optional_user, get_redis_cache, is_admin, require_admin
from app.roadmaps.roadmap_store import RoadmapStore
from app.schemas.roadmap import (
    RoadmapCreate, RoadmapUpdate, RoadmapResponse,
    LevelSave, LevelResponse, MilestoneSave, MilestoneResponse,
    ChallengeSave, ChallengeResponse
)

logger = structlog.get_logger()
router = APIRouter()

CATALOG_CACHE_KEYS = ("roadmaps:public", "roadmaps:all")


async def invalidate_catalog(cache: Cache):
    """Drop cached roadmap listings after any catalog write."""
    for key in CATALOG_CACHE_KEYS:
        await cache.delete(key)


@router.get("/", response_model=List[RoadmapResponse])
async def list_roadmaps(
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_redis_cache)
):
    """List roadmaps with their full tree. Private roadmaps are admin only."""
    include_private = is_admin(current_user)
    cache_key = CATALOG_CACHE_KEYS[1] if include_private else CATALOG_CACHE_KEYS[0]

    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    roadmaps = await RoadmapStore(db).list_roadmaps(include_private=include_private)
    payload = [RoadmapResponse.model_validate(r).model_dump(mode="json") for r in roadmaps]

    await cache.set(cache_key, payload, ttl=settings.CACHE_TTL)
    return payload


@router.post("/", response_model=RoadmapResponse)
async def create_roadmap(
    roadmap: RoadmapCreate,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_redis_cache)
):
    """Create a roadmap, optionally with its levels, milestones and challenges."""
    created = await RoadmapStore(db).create_roadmap(roadmap)
    await invalidate_catalog(cache)
    return created


@router.get("/{roadmap_id}", response_model=RoadmapResponse)
async def get_roadmap(
    roadmap_id: UUID,
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Get one roadmap."""
    return await RoadmapStore(db).get_roadmap(roadmap_id, include_private=is_admin(current_user))


@router.put("/{roadmap_id}", response_model=RoadmapResponse)
async def update_roadmap(
    roadmap_id: UUID,
    update: RoadmapUpdate,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_redis_cache)
):
    """Update a roadmap. Sending ``levels`` replaces the whole tree."""
    roadmap = await RoadmapStore(db).update_roadmap(roadmap_id, update)
    await invalidate_catalog(cache)
    return roadmap


@router.delete("/{roadmap_id}", response_model=Dict[str, Any])
async def delete_roadmap(
    roadmap_id: UUID,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_redis_cache)
):
    """Delete a roadmap and every progress record attached to it."""
    await RoadmapStore(db).delete_roadmap(roadmap_id)
    await invalidate_catalog(cache)
    return {"message": "Roadmap deleted successfully", "roadmap_id": str(roadmap_id)}


@router.get("/{roadmap_id}/levels", response_model=List[LevelResponse])
async def list_levels(
    roadmap_id: UUID,
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """List the levels of a roadmap."""
    roadmap = await RoadmapStore(db).get_roadmap(roadmap_id, include_private=is_admin(current_user))
    return roadmap.levels


@router.post("/{roadmap_id}/levels", response_model=List[LevelResponse])
async def save_level(
    roadmap_id: UUID,
    level: LevelSave,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_redis_cache)
):
    """Add a level, or edit it when the payload carries an id."""
    levels = await RoadmapStore(db).save_level(roadmap_id, level)
    await invalidate_catalog(cache)
    return levels


@router.delete("/{roadmap_id}/levels/{level_id}", response_model=List[LevelResponse])
async def delete_level(
    roadmap_id: UUID,
    level_id: UUID,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_redis_cache)
):
    """Delete a level with its milestones and challenges."""
    levels = await RoadmapStore(db).delete_level(roadmap_id, level_id)
    await invalidate_catalog(cache)
    return levels


@router.get("/{roadmap_id}/levels/{level_id}/milestones", response_model=List[MilestoneResponse])
async def list_milestones(
    roadmap_id: UUID,
    level_id: UUID,
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """List the milestones of a level."""
    store = RoadmapStore(db)
    await store.get_roadmap(roadmap_id, include_private=is_admin(current_user))
    return await store.list_milestones(roadmap_id, level_id)


@router.post("/{roadmap_id}/levels/{level_id}/milestones", response_model=List[MilestoneResponse])
async def save_milestone(
    roadmap_id: UUID,
    level_id: UUID,
    milestone: MilestoneSave,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_redis_cache)
):
    """Add a milestone, or edit it when the payload carries an id."""
    milestones = await RoadmapStore(db).save_milestone(roadmap_id, level_id, milestone)
    await invalidate_catalog(cache)
    return milestones


@router.delete(
    "/{roadmap_id}/levels/{level_id}/milestones/{milestone_id}",
    response_model=List[MilestoneResponse]
)
async def delete_milestone(
    roadmap_id: UUID,
    level_id: UUID,
    milestone_id: UUID,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_redis_cache)
):
    """Delete a milestone with its challenges."""
    milestones = await RoadmapStore(db).delete_milestone(roadmap_id, level_id, milestone_id)
    await invalidate_catalog(cache)
    return milestones


@router.get(
    "/{roadmap_id}/levels/{level_id}/milestones/{milestone_id}/challenges",
    response_model=List[ChallengeResponse]
)
async def list_challenges(
    roadmap_id: UUID,
    level_id: UUID,
    milestone_id: UUID,
    current_user: Optional[dict] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """List the challenges of a milestone."""
    store = RoadmapStore(db)
    await store.get_roadmap(roadmap_id, include_private=is_admin(current_user))
    return await store.list_challenges(roadmap_id, level_id, milestone_id)


@router.post(
    "/{roadmap_id}/levels/{level_id}/milestones/{milestone_id}/challenges",
    response_model=List[ChallengeResponse]
)
async def save_challenge(
    roadmap_id: UUID,
    level_id: UUID,
    milestone_id: UUID,
    challenge: ChallengeSave,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_redis_cache)
):
    """Add a challenge, or edit it when the payload carries an id."""
    challenges = await RoadmapStore(db).save_challenge(roadmap_id, level_id, milestone_id, challenge)
    await invalidate_catalog(cache)
    return challenges


@router.delete(
    "/{roadmap_id}/levels/{level_id}/milestones/{milestone_id}/challenges/{challenge_id}",
    response_model=List[ChallengeResponse]
)
async def delete_challenge(
    roadmap_id: UUID,
    level_id: UUID,
    milestone_id: UUID,
    challenge_id: UUID,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_redis_cache)
):
    """Delete a challenge. Progress records keep its id but metrics ignore it."""
    challenges = await RoadmapStore(db).delete_challenge(roadmap_id, level_id, milestone_id, challenge_id)
    await invalidate_catalog(cache)
    return challenges
