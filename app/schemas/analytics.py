"""Roadmap analytics schemas."""

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class LevelStat(BaseModel):
    id: str
    title: str
    completions: int
    completion_rate: float


class RoadmapAnalytics(BaseModel):
    roadmap_id: UUID
    roadmap_title: str
    total_users: int
    total_levels: int
    total_challenges: int
    completed_levels: int
    completed_challenges: int
    level_completion_rate: float
    challenge_completion_rate: float
    average_completion_percentage: float
    median_completion_percentage: float
    level_stats: List[LevelStat] = Field(default_factory=list)
    recent_activity: int
    generated_at: datetime
