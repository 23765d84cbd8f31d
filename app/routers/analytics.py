"""Analytics and reporting endpoints."""

from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.analytics.analytics_engine import AnalyticsEngine
from app.core.database import get_db
from app.core.dependencies import get_current_user, is_staff
from app.schemas.analytics import RoadmapAnalytics

logger = structlog.get_logger()
router = APIRouter()


@router.get("/{roadmap_id}/analytics", response_model=RoadmapAnalytics)
async def get_roadmap_analytics(
    roadmap_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get completion analytics across all learners of a roadmap."""
    if not is_staff(current_user):
        raise HTTPException(status_code=403, detail="Not authorized")

    return await AnalyticsEngine(db).calculate_roadmap_analytics(roadmap_id)
