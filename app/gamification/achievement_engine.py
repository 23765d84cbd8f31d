"""Achievement evaluation and unlocking engine."""

from typing import Dict, Any, List
from datetime import datetime, time
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func
import structlog

from app.gamification.achievements import ACHIEVEMENTS
from app.models.progress import ChallengeCompletion, UserRoadmapProgress
from app.models.roadmap import Roadmap
from app.progress import metrics

logger = structlog.get_logger()


class AchievementEngine:
    """Engine for checking and unlocking roadmap achievements."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def check_and_unlock(
        self,
        progress: UserRoadmapProgress,
        roadmap: Roadmap
    ) -> List[str]:
        """Append newly earned achievements to the record.

        Earned achievements are never revoked. The caller owns the commit.
        """
        earned = list(progress.achievements or [])
        pending = [rule for rule in ACHIEVEMENTS if rule.id not in earned]
        if not pending:
            return []

        context = await self._build_context(progress, roadmap)
        unlocked = [rule.id for rule in pending if rule.predicate(context)]

        if unlocked:
            progress.achievements = earned + unlocked
            logger.info(
                "Achievements unlocked",
                user_id=progress.user_id,
                roadmap_id=str(progress.roadmap_id),
                achievements=unlocked
            )

        return unlocked

    async def _build_context(
        self,
        progress: UserRoadmapProgress,
        roadmap: Roadmap
    ) -> Dict[str, Any]:
        """Gather the counters the rules look at."""
        completed = set(progress.completed_challenges or [])
        all_challenges = metrics.roadmap_challenge_ids(roadmap)
        known_levels = set(metrics.roadmap_level_ids(roadmap))

        return {
            "total_challenges": len(all_challenges),
            "completed_challenges": sum(1 for cid in all_challenges if cid in completed),
            "completed_levels": len(set(progress.completed_levels or []) & known_levels),
            "completed_milestones": metrics.count_completed_milestones(roadmap, completed),
            "completions_today": await self._count_completions_today(progress),
        }

    async def _count_completions_today(self, progress: UserRoadmapProgress) -> int:
        """Completions recorded since midnight UTC for this record."""
        day_start = datetime.combine(datetime.utcnow().date(), time.min)
        result = await self.db.execute(
            select(func.count(ChallengeCompletion.id)).where(
                and_(
                    ChallengeCompletion.progress_id == progress.id,
                    ChallengeCompletion.completed_at >= day_start
                )
            )
        )
        return result.scalar_one()
