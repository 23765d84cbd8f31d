import uuid

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select

from app.core.exceptions import LevelNotFoundError, MilestoneNotFoundError, RoadmapNotFoundError
from app.models.progress import UserRoadmapProgress
from app.progress.progress_engine import ProgressEngine
from app.roadmaps.roadmap_store import RoadmapStore
from app.schemas.roadmap import (
    ChallengeSave, LevelCreate, LevelSave, MilestoneSave, RoadmapUpdate
)
from tests.utils import challenge_ids, create_roadmap

pytestmark = pytest.mark.asyncio


async def test_create_roadmap_keeps_tree_order(db_session):
    roadmap = await create_roadmap(db_session)

    assert [level.title for level in roadmap.levels] == ["Foundations", "Persistence"]
    first_level = roadmap.levels[0]
    assert [m.title for m in first_level.milestones] == ["HTTP basics", "First API"]

    challenges = first_level.milestones[0].challenges
    assert [c.type for c in challenges] == ["reading", "quiz"]
    assert challenges[0].resources == ["https://httpwg.org"]
    assert first_level.milestones[1].challenges[0].type == "project"


async def test_list_roadmaps_hides_private_ones(db_session):
    await create_roadmap(db_session, title="Public path")
    await create_roadmap(db_session, title="Draft path", visibility="private")
    store = RoadmapStore(db_session)

    public = await store.list_roadmaps()
    everything = await store.list_roadmaps(include_private=True)

    assert [r.title for r in public] == ["Public path"]
    assert {r.title for r in everything} == {"Public path", "Draft path"}


async def test_get_private_roadmap_without_access(db_session):
    roadmap = await create_roadmap(db_session, visibility="private")
    store = RoadmapStore(db_session)

    with pytest.raises(RoadmapNotFoundError):
        await store.get_roadmap(roadmap.id, include_private=False)
    assert (await store.get_roadmap(roadmap.id)).id == roadmap.id


async def test_update_scalar_fields_keeps_levels(db_session):
    roadmap = await create_roadmap(db_session)

    updated = await RoadmapStore(db_session).update_roadmap(
        roadmap.id, RoadmapUpdate(title="Backend Engineer", visibility="private")
    )

    assert updated.title == "Backend Engineer"
    assert updated.visibility == "private"
    assert updated.description == "From HTTP basics to persistence"
    assert len(updated.levels) == 2


async def test_update_with_levels_replaces_tree(db_session):
    roadmap = await create_roadmap(db_session)

    updated = await RoadmapStore(db_session).update_roadmap(
        roadmap.id, RoadmapUpdate(levels=[LevelCreate(title="Everything", order=1)])
    )

    assert [level.title for level in updated.levels] == ["Everything"]
    assert updated.levels[0].milestones == []


async def test_save_level_appends_then_edits(db_session):
    roadmap = await create_roadmap(db_session)
    store = RoadmapStore(db_session)

    levels = await store.save_level(roadmap.id, LevelSave(title="Scaling", order=3))
    assert [level.title for level in levels] == ["Foundations", "Persistence", "Scaling"]

    new_level = levels[-1]
    levels = await store.save_level(
        roadmap.id, LevelSave(id=new_level.id, title="Scaling out", order=0)
    )
    assert [level.title for level in levels] == ["Scaling out", "Foundations", "Persistence"]


async def test_save_unknown_level_is_rejected(db_session):
    roadmap = await create_roadmap(db_session)

    with pytest.raises(LevelNotFoundError):
        await RoadmapStore(db_session).save_level(roadmap.id, LevelSave(id=uuid.uuid4(), title="Ghost"))


async def test_save_milestone_and_challenge(db_session):
    roadmap = await create_roadmap(db_session)
    level = roadmap.levels[1]
    store = RoadmapStore(db_session)

    milestones = await store.save_milestone(roadmap.id, level.id, MilestoneSave(title="Caching"))
    assert [m.title for m in milestones] == ["Databases", "Caching"]

    caching = milestones[-1]
    challenges = await store.save_challenge(
        roadmap.id, level.id, caching.id, ChallengeSave(title="Add a cache layer", type="project")
    )
    assert [c.title for c in challenges] == ["Add a cache layer"]

    challenges = await store.save_challenge(
        roadmap.id, level.id, caching.id,
        ChallengeSave(id=challenges[0].id, title="Add a Redis cache", type="quiz")
    )
    assert [(c.title, c.type) for c in challenges] == [("Add a Redis cache", "quiz")]


async def test_save_challenge_in_unknown_milestone(db_session):
    roadmap = await create_roadmap(db_session)

    with pytest.raises(MilestoneNotFoundError):
        await RoadmapStore(db_session).save_challenge(
            roadmap.id, roadmap.levels[0].id, uuid.uuid4(), ChallengeSave(title="Lost")
        )


async def test_delete_level_and_milestone(db_session):
    roadmap = await create_roadmap(db_session)
    store = RoadmapStore(db_session)
    first_level = roadmap.levels[0]

    milestones = await store.delete_milestone(roadmap.id, first_level.id, first_level.milestones[0].id)
    assert [m.title for m in milestones] == ["First API"]

    levels = await store.delete_level(roadmap.id, first_level.id)
    assert [level.title for level in levels] == ["Persistence"]


async def test_delete_roadmap_removes_progress(db_session):
    roadmap = await create_roadmap(db_session)
    await ProgressEngine(db_session).complete_challenge("learner-1", roadmap.id, challenge_ids(roadmap)[0][0])
    store = RoadmapStore(db_session)

    await store.delete_roadmap(roadmap.id)

    with pytest.raises(RoadmapNotFoundError):
        await store.get_roadmap(roadmap.id)
    count = await db_session.execute(select(func.count(UserRoadmapProgress.id)))
    assert count.scalar_one() == 0


async def test_edit_without_title_keeps_it(db_session):
    roadmap = await create_roadmap(db_session)
    store = RoadmapStore(db_session)
    level = roadmap.levels[1]
    milestone = level.milestones[0]

    levels = await store.save_level(roadmap.id, LevelSave(id=level.id, order=0))
    assert [(lvl.title, lvl.order) for lvl in levels][0] == ("Persistence", 0)

    milestones = await store.save_milestone(
        roadmap.id, level.id, MilestoneSave(id=milestone.id, reward="Database badge")
    )
    assert [(m.title, m.reward) for m in milestones] == [("Databases", "Database badge")]

    challenge = milestone.challenges[0]
    challenges = await store.save_challenge(
        roadmap.id, level.id, milestone.id, ChallengeSave(id=challenge.id, title=None, type="quiz")
    )
    assert (challenges[0].title, challenges[0].type) == ("Model a schema", "quiz")


def test_new_items_need_a_title():
    with pytest.raises(ValidationError):
        LevelSave(order=2)
    with pytest.raises(ValidationError):
        MilestoneSave(reward="Badge")
    with pytest.raises(ValidationError):
        ChallengeSave(type="quiz")
    assert LevelSave(id=uuid.uuid4(), order=2).title is None
