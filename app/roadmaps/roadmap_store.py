"""Persistence for the roadmap catalog tree."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
import structlog

from app.core.exceptions import (
    RoadmapNotFoundError, LevelNotFoundError, MilestoneNotFoundError, ChallengeNotFoundError
)
from app.models.progress import ChallengeCompletion, UserRoadmapProgress
from app.models.roadmap import Roadmap, Level, Milestone, Challenge, Visibility
from app.schemas.roadmap import (
    RoadmapCreate, RoadmapUpdate, LevelCreate, LevelSave, MilestoneCreate, MilestoneSave,
    ChallengeCreate, ChallengeSave
)

logger = structlog.get_logger()


def _build_challenge(data: ChallengeCreate, position: int) -> Challenge:
    return Challenge(
        title=data.title,
        description=data.description,
        type=data.type.value,
        resources=list(data.resources),
        position=position,
    )


def _build_milestone(data: MilestoneCreate, position: int) -> Milestone:
    return Milestone(
        title=data.title,
        description=data.description,
        due_date=data.due_date,
        reward=data.reward,
        position=position,
        challenges=[_build_challenge(c, i) for i, c in enumerate(data.challenges)],
    )


def _build_level(data: LevelCreate, position: int) -> Level:
    return Level(
        title=data.title,
        order=data.order,
        unlock_requirements=data.unlock_requirements,
        position=position,
        milestones=[_build_milestone(m, i) for i, m in enumerate(data.milestones)],
    )


def _next_position(items) -> int:
    return max((item.position for item in items), default=-1) + 1


def _apply_edit(item, data) -> None:
    """Copy the fields an upsert payload sent onto an existing row."""
    for key, value in data.model_dump(exclude_unset=True, exclude={"id"}).items():
        if key == "title" and value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        setattr(item, key, value)


def _find(items, item_id: UUID):
    for item in items:
        if item.id == item_id:
            return item
    return None


class RoadmapStore:
    """CRUD over roadmaps and their nested levels, milestones and challenges.

    Every write reloads the roadmap before returning it, so callers always see
    the tree in database order.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_roadmaps(self, include_private: bool = False) -> List[Roadmap]:
        """All roadmaps, public ones only unless asked otherwise."""
        query = select(Roadmap).order_by(Roadmap.created_at)
        if not include_private:
            query = query.where(Roadmap.visibility == Visibility.PUBLIC.value)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_roadmap(self, roadmap_id: UUID, include_private: bool = True) -> Roadmap:
        """Load one roadmap with its full tree."""
        result = await self.db.execute(
            select(Roadmap)
            .where(Roadmap.id == roadmap_id)
            .execution_options(populate_existing=True)
        )
        roadmap = result.scalar_one_or_none()

        if roadmap is None:
            raise RoadmapNotFoundError(roadmap_id)
        if not include_private and roadmap.visibility != Visibility.PUBLIC.value:
            raise RoadmapNotFoundError(roadmap_id)

        return roadmap

    async def create_roadmap(self, data: RoadmapCreate) -> Roadmap:
        """Create a roadmap, nested tree included."""
        roadmap = Roadmap(
            title=data.title,
            description=data.description,
            icon=data.icon,
            visibility=data.visibility.value,
            levels=[_build_level(level, i) for i, level in enumerate(data.levels)],
        )
        self.db.add(roadmap)
        await self._commit("create_roadmap")

        logger.info("Roadmap created", roadmap_id=str(roadmap.id), title=roadmap.title)
        return await self.get_roadmap(roadmap.id)

    async def update_roadmap(self, roadmap_id: UUID, data: RoadmapUpdate) -> Roadmap:
        """Update scalar fields and optionally replace the tree."""
        roadmap = await self.get_roadmap(roadmap_id)
        update_data = data.model_dump(exclude_unset=True, exclude={"levels"})

        for key, value in update_data.items():
            if value is None and key in ("title", "visibility"):
                continue
            if key == "visibility":
                value = Visibility(value).value
            setattr(roadmap, key, value)

        if data.levels is not None:
            roadmap.levels = [_build_level(level, i) for i, level in enumerate(data.levels)]

        await self._commit("update_roadmap")
        logger.info("Roadmap updated", roadmap_id=str(roadmap_id), fields=sorted(update_data))
        return await self.get_roadmap(roadmap_id)

    async def delete_roadmap(self, roadmap_id: UUID) -> None:
        """Delete a roadmap together with all progress recorded against it."""
        roadmap = await self.get_roadmap(roadmap_id)

        await self.db.execute(
            delete(ChallengeCompletion).where(ChallengeCompletion.roadmap_id == roadmap_id)
        )
        await self.db.execute(
            delete(UserRoadmapProgress).where(UserRoadmapProgress.roadmap_id == roadmap_id)
        )
        await self.db.delete(roadmap)
        await self._commit("delete_roadmap")

        logger.info("Roadmap deleted", roadmap_id=str(roadmap_id))

    # Levels

    async def list_levels(self, roadmap_id: UUID) -> List[Level]:
        roadmap = await self.get_roadmap(roadmap_id)
        return list(roadmap.levels)

    async def save_level(self, roadmap_id: UUID, data: LevelSave) -> List[Level]:
        """Edit a level when ``data.id`` is set, append a new empty one otherwise."""
        roadmap = await self.get_roadmap(roadmap_id)

        if data.id is not None:
            level = _find(roadmap.levels, data.id)
            if level is None:
                raise LevelNotFoundError(data.id)
            _apply_edit(level, data)
        else:
            roadmap.levels.append(
                Level(
                    title=data.title,
                    order=data.order,
                    unlock_requirements=data.unlock_requirements,
                    position=_next_position(roadmap.levels),
                    milestones=[],
                )
            )

        roadmap.updated_at = datetime.utcnow()
        await self._commit("save_level")
        return await self.list_levels(roadmap_id)

    async def delete_level(self, roadmap_id: UUID, level_id: UUID) -> List[Level]:
        roadmap = await self.get_roadmap(roadmap_id)
        level = _find(roadmap.levels, level_id)
        if level is None:
            raise LevelNotFoundError(level_id)

        roadmap.levels.remove(level)
        roadmap.updated_at = datetime.utcnow()
        await self._commit("delete_level")
        return await self.list_levels(roadmap_id)

    # Milestones

    async def _get_level(self, roadmap_id: UUID, level_id: UUID) -> Level:
        roadmap = await self.get_roadmap(roadmap_id)
        level = _find(roadmap.levels, level_id)
        if level is None:
            raise LevelNotFoundError(level_id)
        return level

    async def list_milestones(self, roadmap_id: UUID, level_id: UUID) -> List[Milestone]:
        level = await self._get_level(roadmap_id, level_id)
        return list(level.milestones)

    async def save_milestone(
        self,
        roadmap_id: UUID,
        level_id: UUID,
        data: MilestoneSave
    ) -> List[Milestone]:
        """Edit a milestone when ``data.id`` is set, append a new empty one otherwise."""
        level = await self._get_level(roadmap_id, level_id)

        if data.id is not None:
            milestone = _find(level.milestones, data.id)
            if milestone is None:
                raise MilestoneNotFoundError(data.id)
            _apply_edit(milestone, data)
        else:
            level.milestones.append(
                Milestone(
                    title=data.title,
                    description=data.description,
                    due_date=data.due_date,
                    reward=data.reward,
                    position=_next_position(level.milestones),
                    challenges=[],
                )
            )

        await self._touch(roadmap_id)
        await self._commit("save_milestone")
        return await self.list_milestones(roadmap_id, level_id)

    async def delete_milestone(
        self,
        roadmap_id: UUID,
        level_id: UUID,
        milestone_id: UUID
    ) -> List[Milestone]:
        level = await self._get_level(roadmap_id, level_id)
        milestone = _find(level.milestones, milestone_id)
        if milestone is None:
            raise MilestoneNotFoundError(milestone_id)

        level.milestones.remove(milestone)
        await self._touch(roadmap_id)
        await self._commit("delete_milestone")
        return await self.list_milestones(roadmap_id, level_id)

    # Challenges

    async def _get_milestone(self, roadmap_id: UUID, level_id: UUID, milestone_id: UUID) -> Milestone:
        level = await self._get_level(roadmap_id, level_id)
        milestone = _find(level.milestones, milestone_id)
        if milestone is None:
            raise MilestoneNotFoundError(milestone_id)
        return milestone

    async def list_challenges(
        self,
        roadmap_id: UUID,
        level_id: UUID,
        milestone_id: UUID
    ) -> List[Challenge]:
        milestone = await self._get_milestone(roadmap_id, level_id, milestone_id)
        return list(milestone.challenges)

    async def save_challenge(
        self,
        roadmap_id: UUID,
        level_id: UUID,
        milestone_id: UUID,
        data: ChallengeSave
    ) -> List[Challenge]:
        """Edit a challenge when ``data.id`` is set, append a new one otherwise."""
        milestone = await self._get_milestone(roadmap_id, level_id, milestone_id)

        if data.id is not None:
            challenge = _find(milestone.challenges, data.id)
            if challenge is None:
                raise ChallengeNotFoundError(data.id)
            _apply_edit(challenge, data)
        else:
            milestone.challenges.append(_build_challenge(data, _next_position(milestone.challenges)))

        await self._touch(roadmap_id)
        await self._commit("save_challenge")
        return await self.list_challenges(roadmap_id, level_id, milestone_id)

    async def delete_challenge(
        self,
        roadmap_id: UUID,
        level_id: UUID,
        milestone_id: UUID,
        challenge_id: UUID
    ) -> List[Challenge]:
        milestone = await self._get_milestone(roadmap_id, level_id, milestone_id)
        challenge = _find(milestone.challenges, challenge_id)
        if challenge is None:
            raise ChallengeNotFoundError(challenge_id)

        milestone.challenges.remove(challenge)
        await self._touch(roadmap_id)
        await self._commit("delete_challenge")
        return await self.list_challenges(roadmap_id, level_id, milestone_id)

    async def _touch(self, roadmap_id: UUID) -> Optional[Roadmap]:
        """Bump updated_at on the owning roadmap for nested edits."""
        roadmap = await self.db.get(Roadmap, roadmap_id)
        if roadmap is not None:
            roadmap.updated_at = datetime.utcnow()
        return roadmap

    async def _commit(self, operation: str) -> None:
        try:
            await self.db.commit()
        except Exception as e:
            logger.error("Roadmap catalog write failed", operation=operation, error=str(e))
            await self.db.rollback()
            raise
