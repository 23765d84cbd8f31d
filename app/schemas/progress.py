"""Schemas for user roadmap progress and its derived metrics."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProgressRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    roadmap_id: UUID
    current_level_id: Optional[str] = None
    current_milestone_id: Optional[str] = None
    completed_challenges: List[str] = Field(default_factory=list)
    completed_levels: List[str] = Field(default_factory=list)
    achievements: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MilestoneProgress(BaseModel):
    id: str
    title: str
    total_challenges: int
    completed_challenges: int
    completion_percentage: float
    is_completed: bool


class LevelProgress(BaseModel):
    id: str
    title: str
    order: int
    total_challenges: int
    completed_challenges: int
    completion_percentage: float
    is_completed: bool
    is_unlocked: bool
    milestones: List[MilestoneProgress] = Field(default_factory=list)


class ProgressMetrics(BaseModel):
    total_challenges: int
    completed_challenge_count: int
    completion_percentage: float
    total_levels: int
    completed_level_count: int
    level_completion_percentage: float
    completed_milestone_count: int
    levels: List[LevelProgress] = Field(default_factory=list)


class ProgressView(BaseModel):
    progress: ProgressRecord
    metrics: ProgressMetrics


class ChallengeActionResult(ProgressView):
    newly_completed: bool = False
    completed_level_ids: List[str] = Field(default_factory=list)
    unlocked_achievements: List[str] = Field(default_factory=list)


class PositionUpdate(BaseModel):
    current_level_id: UUID
    current_milestone_id: Optional[UUID] = None


class RoadmapProgressSummary(BaseModel):
    roadmap_id: UUID
    roadmap_title: str
    completion_percentage: float
    completed_levels: int
    total_levels: int
    achievements: List[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None
