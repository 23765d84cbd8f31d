"""Achievement catalog and per-user status schemas."""

from typing import List
from uuid import UUID

from pydantic import BaseModel


class AchievementResponse(BaseModel):
    id: str
    title: str
    description: str


class AchievementStatus(AchievementResponse):
    unlocked: bool


class AchievementStatusList(BaseModel):
    user_id: str
    roadmap_id: UUID
    achievements: List[AchievementStatus]
