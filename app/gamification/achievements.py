"""Achievement catalog.

Each entry pairs the display data with a predicate over an evaluation context
built by the achievement engine. Thresholds come from settings so they can be
tuned per deployment.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from app.core.config import settings


@dataclass(frozen=True)
class AchievementRule:
    id: str
    title: str
    description: str
    # Receives the evaluation context, see AchievementEngine._build_context
    predicate: Callable[[Dict[str, Any]], bool]


ACHIEVEMENTS: List[AchievementRule] = [
    AchievementRule(
        id="first_challenge",
        title="First Steps",
        description="Complete your first challenge",
        predicate=lambda ctx: ctx["completed_challenges"] >= 1,
    ),
    AchievementRule(
        id="level_complete",
        title="Level Master",
        description="Complete your first level",
        predicate=lambda ctx: ctx["completed_levels"] >= 1,
    ),
    AchievementRule(
        id="milestone_reached",
        title="Milestone Hunter",
        description=f"Complete {settings.MILESTONE_HUNTER_COUNT} milestones",
        predicate=lambda ctx: ctx["completed_milestones"] >= settings.MILESTONE_HUNTER_COUNT,
    ),
    AchievementRule(
        id="speed_demon",
        title="Speed Demon",
        description=f"Complete {settings.SPEED_DEMON_DAILY_CHALLENGES} challenges in one day",
        predicate=lambda ctx: ctx["completions_today"] >= settings.SPEED_DEMON_DAILY_CHALLENGES,
    ),
    AchievementRule(
        id="overachiever",
        title="Overachiever",
        description=f"Complete {settings.OVERACHIEVER_CHALLENGES} challenges",
        predicate=lambda ctx: ctx["completed_challenges"] >= settings.OVERACHIEVER_CHALLENGES,
    ),
    AchievementRule(
        id="perfectionist",
        title="Perfectionist",
        description="Complete every challenge of a roadmap",
        predicate=lambda ctx: ctx["total_challenges"] > 0
        and ctx["completed_challenges"] == ctx["total_challenges"],
    ),
]

ACHIEVEMENTS_BY_ID: Dict[str, AchievementRule] = {rule.id: rule for rule in ACHIEVEMENTS}
