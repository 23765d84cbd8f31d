"""Data models for Roadmap Progress Service."""

from app.models.roadmap import Roadmap, Level, Milestone, Challenge, ChallengeType, Visibility
from app.models.progress import UserRoadmapProgress, ChallengeCompletion

__all__ = [
    "Roadmap",
    "Level",
    "Milestone",
    "Challenge",
    "ChallengeType",
    "Visibility",
    "UserRoadmapProgress",
    "ChallengeCompletion"
]
