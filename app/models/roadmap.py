"""Roadmap catalog models: roadmap -> levels -> milestones -> challenges."""

from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Integer, Text, DateTime, Date, ForeignKey, Index, JSON, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base


class Visibility(str, Enum):
    """Who can see a roadmap."""
    PUBLIC = "public"
    PRIVATE = "private"


class ChallengeType(str, Enum):
    """Kinds of challenge a learner can complete."""
    QUIZ = "quiz"
    PROJECT = "project"
    READING = "reading"


class Challenge(Base):
    """A single task inside a milestone."""
    __tablename__ = "challenges"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    milestone_id = Column(Uuid, ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, default="")
    type = Column(String, nullable=False, default=ChallengeType.PROJECT.value)
    resources = Column(JSON, default=list)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)


class Milestone(Base):
    """A checkpoint within a level."""
    __tablename__ = "milestones"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    level_id = Column(Uuid, ForeignKey("levels.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, default="")
    due_date = Column(Date)
    reward = Column(String)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    challenges = relationship(
        Challenge,
        cascade="all, delete-orphan",
        order_by=[Challenge.position, Challenge.created_at],
        lazy="selectin",
    )


class Level(Base):
    """A ranked stage of a roadmap."""
    __tablename__ = "levels"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    roadmap_id = Column(Uuid, ForeignKey("roadmaps.id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    order = Column(Integer, nullable=False, default=0)
    unlock_requirements = Column(String)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    milestones = relationship(
        Milestone,
        cascade="all, delete-orphan",
        order_by=[Milestone.position, Milestone.created_at],
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_levels_roadmap_order", "roadmap_id", "order"),
    )


class Roadmap(Base):
    """A structured learning path."""
    __tablename__ = "roadmaps"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    description = Column(Text, default="")
    icon = Column(String)
    visibility = Column(String, nullable=False, default=Visibility.PUBLIC.value, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    levels = relationship(
        Level,
        cascade="all, delete-orphan",
        order_by=[Level.order, Level.position],
        lazy="selectin",
    )
