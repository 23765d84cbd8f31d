"""Progress tracking engine for user roadmap records."""

from typing import Dict, Any, List, Optional, Tuple
from datetime import datetime
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, and_
import structlog

from app.core.config import settings
from app.core.exceptions import ChallengeNotFoundError, InvalidPositionError, LevelLockedError
from app.gamification.achievement_engine import AchievementEngine
from app.models.progress import ChallengeCompletion, UserRoadmapProgress
from app.models.roadmap import Roadmap, Visibility
from app.progress import metrics
from app.roadmaps.roadmap_store import RoadmapStore

logger = structlog.get_logger()


class ProgressEngine:
    """Engine for reading and mutating user roadmap progress."""

    def __init__(
        self,
        db: AsyncSession,
        enforce_level_order: Optional[bool] = None,
        include_private: bool = True
    ):
        self.db = db
        self.include_private = include_private
        self.store = RoadmapStore(db)
        self.achievements = AchievementEngine(db)
        if enforce_level_order is None:
            enforce_level_order = settings.ENFORCE_LEVEL_ORDER
        self.enforce_level_order = enforce_level_order

    async def get_or_create_progress(
        self,
        user_id: str,
        roadmap_id: UUID
    ) -> Tuple[UserRoadmapProgress, Roadmap]:
        """Get the record for a user and roadmap, creating it on first interaction."""
        roadmap = await self.store.get_roadmap(roadmap_id, include_private=self.include_private)
        progress = await self._find_progress(user_id, roadmap_id)

        if progress is None:
            level_id, milestone_id = metrics.next_position(roadmap, set())
            progress = UserRoadmapProgress(
                user_id=user_id,
                roadmap_id=roadmap_id,
                current_level_id=level_id,
                current_milestone_id=milestone_id,
                completed_challenges=[],
                completed_levels=[],
                achievements=[]
            )
            self.db.add(progress)

            try:
                await self.db.commit()
                logger.info("Progress created", user_id=user_id, roadmap_id=str(roadmap_id))
            except IntegrityError:
                # Another request created the record first
                await self.db.rollback()
                progress = await self._find_progress(user_id, roadmap_id)
                if progress is None:
                    raise
                roadmap = await self.store.get_roadmap(roadmap_id)

        return progress, roadmap

    async def get_progress_view(self, user_id: str, roadmap_id: UUID) -> Dict[str, Any]:
        """Progress record plus freshly derived metrics."""
        progress, roadmap = await self.get_or_create_progress(user_id, roadmap_id)
        return self.build_view(progress, roadmap)

    def build_view(self, progress: UserRoadmapProgress, roadmap: Roadmap) -> Dict[str, Any]:
        return {
            "progress": progress,
            "metrics": metrics.compute_progress_metrics(
                roadmap,
                progress.completed_challenges or [],
                progress.completed_levels or []
            )
        }

    async def complete_challenge(
        self,
        user_id: str,
        roadmap_id: UUID,
        challenge_id: str
    ) -> Dict[str, Any]:
        """Mark a challenge as completed.

        Completing an already completed challenge writes no history row, but
        still records its level when the level has become complete since, for
        example after its last open challenge was deleted. Level completion,
        pointers and achievements are updated in the same transaction.
        """
        progress, roadmap = await self.get_or_create_progress(user_id, roadmap_id)

        located = metrics.locate_challenge(roadmap, challenge_id)
        if located is None:
            raise ChallengeNotFoundError(challenge_id)
        level, _, _ = located

        completed = list(progress.completed_challenges or [])
        already_completed = challenge_id in completed

        if not already_completed:
            if self.enforce_level_order:
                unlocked = metrics.unlocked_level_ids(roadmap, progress.completed_levels or [])
                if str(level.id) not in unlocked:
                    raise LevelLockedError(level.id)

            completed.append(challenge_id)
            progress.completed_challenges = completed
        completed_set = set(completed)

        # Check for level completion
        new_levels: List[str] = []
        completed_levels = list(progress.completed_levels or [])
        if metrics.is_level_complete(level, completed_set) and str(level.id) not in completed_levels:
            new_levels.append(str(level.id))
            progress.completed_levels = completed_levels + new_levels

        if already_completed and not new_levels:
            return self._action_result(progress, roadmap, newly_completed=False)

        progress.current_level_id, progress.current_milestone_id = metrics.next_position(
            roadmap, completed_set
        )
        progress.updated_at = datetime.utcnow()

        if not already_completed:
            self.db.add(ChallengeCompletion(
                progress_id=progress.id,
                user_id=user_id,
                roadmap_id=roadmap_id,
                challenge_id=challenge_id
            ))

        try:
            unlocked_achievements = await self.achievements.check_and_unlock(progress, roadmap)
            await self.db.commit()
        except Exception as e:
            logger.error("Failed to complete challenge", user_id=user_id, challenge_id=challenge_id, error=str(e))
            await self.db.rollback()
            raise

        logger.info(
            "Challenge completed",
            user_id=user_id,
            roadmap_id=str(roadmap_id),
            challenge_id=challenge_id,
            newly_completed=not already_completed,
            completed_levels=new_levels
        )

        return self._action_result(
            progress,
            roadmap,
            newly_completed=not already_completed,
            completed_level_ids=new_levels,
            unlocked_achievements=unlocked_achievements
        )

    async def reopen_challenge(
        self,
        user_id: str,
        roadmap_id: UUID,
        challenge_id: str
    ) -> Dict[str, Any]:
        """Undo a challenge completion. Earned achievements are kept."""
        progress, roadmap = await self.get_or_create_progress(user_id, roadmap_id)

        completed = list(progress.completed_challenges or [])
        located = metrics.locate_challenge(roadmap, challenge_id)
        if located is None and challenge_id not in completed:
            raise ChallengeNotFoundError(challenge_id)

        if challenge_id not in completed:
            return self._action_result(progress, roadmap, newly_completed=False)

        completed.remove(challenge_id)
        progress.completed_challenges = completed
        completed_set = set(completed)

        if located is not None:
            level, _, _ = located
            completed_levels = list(progress.completed_levels or [])
            if str(level.id) in completed_levels and not metrics.is_level_complete(level, completed_set):
                completed_levels.remove(str(level.id))
                progress.completed_levels = completed_levels

        progress.current_level_id, progress.current_milestone_id = metrics.next_position(
            roadmap, completed_set
        )
        progress.updated_at = datetime.utcnow()

        try:
            await self.db.commit()
        except Exception as e:
            logger.error("Failed to reopen challenge", user_id=user_id, challenge_id=challenge_id, error=str(e))
            await self.db.rollback()
            raise

        logger.info("Challenge reopened", user_id=user_id, roadmap_id=str(roadmap_id), challenge_id=challenge_id)
        return self._action_result(progress, roadmap, newly_completed=False)

    async def set_position(
        self,
        user_id: str,
        roadmap_id: UUID,
        level_id: str,
        milestone_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Move the current level and milestone pointers."""
        progress, roadmap = await self.get_or_create_progress(user_id, roadmap_id)

        level = metrics.find_level(roadmap, level_id)
        if level is None:
            raise InvalidPositionError(f"Level {level_id} is not part of roadmap {roadmap_id}")

        if milestone_id is None:
            milestone_id = str(level.milestones[0].id) if level.milestones else None
        elif milestone_id not in {str(m.id) for m in level.milestones}:
            raise InvalidPositionError(f"Milestone {milestone_id} is not part of level {level_id}")

        if self.enforce_level_order:
            if level_id not in metrics.unlocked_level_ids(roadmap, progress.completed_levels or []):
                raise LevelLockedError(level_id)

        progress.current_level_id = level_id
        progress.current_milestone_id = milestone_id
        progress.updated_at = datetime.utcnow()

        try:
            await self.db.commit()
        except Exception as e:
            logger.error("Failed to move progress pointers", user_id=user_id, error=str(e))
            await self.db.rollback()
            raise

        return self.build_view(progress, roadmap)

    async def list_user_progress(self, user_id: str) -> List[Dict[str, Any]]:
        """One summary per roadmap the user has started.

        Private roadmaps are left out unless the engine includes them.
        """
        result = await self.db.execute(
            select(UserRoadmapProgress)
            .where(UserRoadmapProgress.user_id == user_id)
            .order_by(UserRoadmapProgress.updated_at.desc())
        )
        records = result.scalars().all()
        if not records:
            return []

        roadmap_query = select(Roadmap).where(Roadmap.id.in_([record.roadmap_id for record in records]))
        if not self.include_private:
            roadmap_query = roadmap_query.where(Roadmap.visibility == Visibility.PUBLIC.value)
        roadmap_result = await self.db.execute(roadmap_query)
        roadmaps = {roadmap.id: roadmap for roadmap in roadmap_result.scalars().all()}

        summaries = []
        for record in records:
            roadmap = roadmaps.get(record.roadmap_id)
            if roadmap is None:
                continue
            data = metrics.compute_progress_metrics(
                roadmap,
                record.completed_challenges or [],
                record.completed_levels or []
            )
            summaries.append({
                "roadmap_id": roadmap.id,
                "roadmap_title": roadmap.title,
                "completion_percentage": data["completion_percentage"],
                "completed_levels": data["completed_level_count"],
                "total_levels": data["total_levels"],
                "achievements": list(record.achievements or []),
                "updated_at": record.updated_at
            })

        return summaries

    async def _find_progress(self, user_id: str, roadmap_id: UUID) -> Optional[UserRoadmapProgress]:
        result = await self.db.execute(
            select(UserRoadmapProgress).where(
                and_(
                    UserRoadmapProgress.user_id == user_id,
                    UserRoadmapProgress.roadmap_id == roadmap_id
                )
            )
        )
        return result.scalar_one_or_none()

    def _action_result(
        self,
        progress: UserRoadmapProgress,
        roadmap: Roadmap,
        newly_completed: bool,
        completed_level_ids: Optional[List[str]] = None,
        unlocked_achievements: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        return {
            **self.build_view(progress, roadmap),
            "newly_completed": newly_completed,
            "completed_level_ids": completed_level_ids or [],
            "unlocked_achievements": unlocked_achievements or []
        }
