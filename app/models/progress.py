"""Per-user roadmap progress models."""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Index, JSON, Uuid
import uuid

from app.core.database import Base


class UserRoadmapProgress(Base):
    """Completion record of one user against one roadmap.

    The three ID lists behave as ordered sets. Percentages are never stored,
    they are derived from the roadmap tree on every read.
    """
    __tablename__ = "user_roadmap_progress"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, nullable=False, index=True)
    roadmap_id = Column(Uuid, ForeignKey("roadmaps.id", ondelete="CASCADE"), nullable=False, index=True)
    current_level_id = Column(String)
    current_milestone_id = Column(String)
    completed_challenges = Column(JSON, nullable=False, default=list)
    completed_levels = Column(JSON, nullable=False, default=list)
    achievements = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "roadmap_id"),
        Index("ix_roadmap_progress_updated", "roadmap_id", "updated_at"),
    )


class ChallengeCompletion(Base):
    """History of challenge completions."""
    __tablename__ = "challenge_completions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    progress_id = Column(Uuid, ForeignKey("user_roadmap_progress.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, nullable=False, index=True)
    roadmap_id = Column(Uuid, nullable=False)
    challenge_id = Column(String, nullable=False)
    completed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_completion_user_roadmap_date", "user_id", "roadmap_id", "completed_at"),
    )
