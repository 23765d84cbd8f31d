"""Request and response schemas for the roadmap catalog."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.roadmap import ChallengeType, Visibility


class UpsertModel(BaseModel):
    """Payload that edits the item named by ``id`` or appends a new one.

    An edit only touches the fields it sends, so ``title`` may be left out.
    A new item needs one.
    """

    @model_validator(mode="after")
    def require_title_for_new_items(self):
        if self.id is None and not self.title:
            raise ValueError("title is required when no id is given")
        return self


class ChallengeBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    type: ChallengeType = ChallengeType.PROJECT
    resources: List[str] = Field(default_factory=list)


class ChallengeCreate(ChallengeBase):
    pass


class ChallengeSave(ChallengeBase, UpsertModel):
    """Edits the challenge when ``id`` is set, appends one otherwise."""
    id: Optional[UUID] = None
    title: Optional[str] = Field(None, min_length=1)


class ChallengeResponse(ChallengeBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    description: Optional[str] = ""

    @field_validator("resources", mode="before")
    def default_resources(cls, v):
        return v or []


class MilestoneBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    due_date: Optional[date] = None
    reward: Optional[str] = None


class MilestoneCreate(MilestoneBase):
    challenges: List[ChallengeCreate] = Field(default_factory=list)


class MilestoneSave(MilestoneBase, UpsertModel):
    """Edits the milestone when ``id`` is set, appends one otherwise."""
    id: Optional[UUID] = None
    title: Optional[str] = Field(None, min_length=1)


class MilestoneResponse(MilestoneBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    description: Optional[str] = ""
    challenges: List[ChallengeResponse] = Field(default_factory=list)


class LevelBase(BaseModel):
    title: str = Field(..., min_length=1)
    order: int = 0
    unlock_requirements: Optional[str] = None


class LevelCreate(LevelBase):
    milestones: List[MilestoneCreate] = Field(default_factory=list)


class LevelSave(LevelBase, UpsertModel):
    """Edits the level when ``id`` is set, appends one otherwise."""
    id: Optional[UUID] = None
    title: Optional[str] = Field(None, min_length=1)


class LevelResponse(LevelBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    milestones: List[MilestoneResponse] = Field(default_factory=list)


class RoadmapCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    icon: Optional[str] = None
    visibility: Visibility = Visibility.PUBLIC
    levels: List[LevelCreate] = Field(default_factory=list)


class RoadmapUpdate(BaseModel):
    """Partial update; ``levels`` replaces the whole tree when present."""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    visibility: Optional[Visibility] = None
    levels: Optional[List[LevelCreate]] = None


class RoadmapResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str] = ""
    icon: Optional[str] = None
    visibility: Visibility
    levels: List[LevelResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
