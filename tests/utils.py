"""Factories shared by the test modules."""

import uuid
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import create_access_token
from app.models.roadmap import Challenge, Level, Milestone, Roadmap
from app.roadmaps.roadmap_store import RoadmapStore
from app.schemas.roadmap import RoadmapCreate


def roadmap_payload(title: str = "Backend Developer", visibility: str = "public") -> Dict[str, Any]:
    """Two levels: [2, 1] challenges per milestone, then [2]."""
    return {
        "title": title,
        "description": "From HTTP basics to persistence",
        "icon": "server",
        "visibility": visibility,
        "levels": [
            {
                "title": "Foundations",
                "order": 1,
                "milestones": [
                    {
                        "title": "HTTP basics",
                        "challenges": [
                            {"title": "Read about HTTP semantics", "type": "reading", "resources": ["https://httpwg.org"]},
                            {"title": "Status codes quiz", "type": "quiz"},
                        ],
                    },
                    {
                        "title": "First API",
                        "challenges": [{"title": "Build a hello world service"}],
                    },
                ],
            },
            {
                "title": "Persistence",
                "order": 2,
                "milestones": [
                    {
                        "title": "Databases",
                        "challenges": [
                            {"title": "Model a schema"},
                            {"title": "Write migrations"},
                        ],
                    },
                ],
            },
        ],
    }


async def create_roadmap(db: AsyncSession, **kwargs) -> Roadmap:
    return await RoadmapStore(db).create_roadmap(RoadmapCreate(**roadmap_payload(**kwargs)))


def challenge_ids(roadmap: Roadmap) -> List[List[str]]:
    """Challenge IDs grouped per level, in tree order."""
    return [
        [str(c.id) for m in level.milestones for c in m.challenges]
        for level in roadmap.levels
    ]


def build_roadmap(*levels: List[int]) -> Roadmap:
    """Transient tree; each argument lists the challenge count of every milestone in a level."""
    roadmap = Roadmap(id=uuid.uuid4(), title="Transient", visibility="public", levels=[])
    for index, milestone_sizes in enumerate(levels):
        level = Level(
            id=uuid.uuid4(),
            title=f"Level {index + 1}",
            order=index + 1,
            position=index,
            milestones=[],
        )
        for m_index, size in enumerate(milestone_sizes):
            level.milestones.append(
                Milestone(
                    id=uuid.uuid4(),
                    title=f"Milestone {index + 1}.{m_index + 1}",
                    position=m_index,
                    challenges=[
                        Challenge(id=uuid.uuid4(), title=f"Challenge {c + 1}", position=c)
                        for c in range(size)
                    ],
                )
            )
        roadmap.levels.append(level)
    return roadmap


def auth_headers(user_id: str, *roles: str) -> Dict[str, str]:
    token = create_access_token({"sub": user_id, "roles": list(roles)})
    return {"Authorization": f"Bearer {token}"}
