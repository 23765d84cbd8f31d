"""Roadmap analytics calculation and aggregation engine."""

from typing import Dict, Any, List
from datetime import datetime, timedelta
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import numpy as np
import structlog

from app.core.config import settings
from app.models.progress import UserRoadmapProgress
from app.models.roadmap import Roadmap
from app.progress import metrics
from app.roadmaps.roadmap_store import RoadmapStore

logger = structlog.get_logger()


class AnalyticsEngine:
    """Engine for aggregating progress across all learners of a roadmap."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = RoadmapStore(db)

    async def calculate_roadmap_analytics(self, roadmap_id: UUID) -> Dict[str, Any]:
        """Calculate completion analytics for one roadmap."""
        roadmap = await self.store.get_roadmap(roadmap_id)

        result = await self.db.execute(
            select(UserRoadmapProgress).where(UserRoadmapProgress.roadmap_id == roadmap_id)
        )
        records = result.scalars().all()

        level_ids = metrics.roadmap_level_ids(roadmap)
        challenge_ids = set(metrics.roadmap_challenge_ids(roadmap))
        known_levels = set(level_ids)

        total_users = len(records)
        total_levels = len(level_ids)
        total_challenges = len(challenge_ids)

        # Only count IDs still present in the roadmap
        completed_challenges = sum(
            len(set(record.completed_challenges or []) & challenge_ids) for record in records
        )
        completed_levels = sum(
            len(set(record.completed_levels or []) & known_levels) for record in records
        )

        percentages = np.array([
            metrics.percentage(
                len(set(record.completed_challenges or []) & challenge_ids),
                total_challenges
            )
            for record in records
        ], dtype=float)

        analytics = {
            "roadmap_id": roadmap.id,
            "roadmap_title": roadmap.title,
            "total_users": total_users,
            "total_levels": total_levels,
            "total_challenges": total_challenges,
            "completed_levels": completed_levels,
            "completed_challenges": completed_challenges,
            "level_completion_rate": metrics.percentage(completed_levels, total_users * total_levels),
            "challenge_completion_rate": metrics.percentage(
                completed_challenges, total_users * total_challenges
            ),
            "average_completion_percentage": self._round(np.mean(percentages)) if percentages.size else 0.0,
            "median_completion_percentage": self._round(np.median(percentages)) if percentages.size else 0.0,
            "level_stats": self._level_stats(roadmap, records),
            "recent_activity": self._count_recent(records),
            "generated_at": datetime.utcnow()
        }

        logger.info(
            "Roadmap analytics calculated",
            roadmap_id=str(roadmap_id),
            total_users=total_users
        )
        return analytics

    def _level_stats(self, roadmap: Roadmap, records: List[UserRoadmapProgress]) -> List[Dict[str, Any]]:
        """Completion count per level, most completed first."""
        total_users = len(records)
        stats = []

        for level in metrics.ordered_levels(roadmap):
            level_id = str(level.id)
            completions = sum(1 for record in records if level_id in (record.completed_levels or []))
            stats.append({
                "id": level_id,
                "title": level.title,
                "completions": completions,
                "completion_rate": metrics.percentage(completions, total_users)
            })

        # Stable sort keeps level order among equal counts
        return sorted(stats, key=lambda item: item["completions"], reverse=True)

    def _count_recent(self, records: List[UserRoadmapProgress]) -> int:
        """Records touched within the recent activity window."""
        since = datetime.utcnow() - timedelta(days=settings.ANALYTICS_RECENT_DAYS)
        return sum(1 for record in records if record.updated_at and record.updated_at > since)

    @staticmethod
    def _round(value) -> float:
        return round(float(value), 2)
