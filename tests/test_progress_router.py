import uuid

import pytest

from tests.utils import auth_headers, challenge_ids

pytestmark = pytest.mark.asyncio

USER = "learner-1"
LEARNER = auth_headers(USER)
OTHER = auth_headers("learner-2")
INSTRUCTOR = auth_headers("instructor-1", "instructor")


def complete_url(roadmap_id, challenge_id):
    return f"/api/progress/{USER}/roadmaps/{roadmap_id}/challenges/{challenge_id}/complete"


async def test_progress_requires_authentication(async_client, roadmap):
    response = await async_client.get(f"/api/progress/{USER}/roadmaps/{roadmap.id}")
    assert response.status_code == 401


async def test_get_progress_creates_record(async_client, roadmap):
    response = await async_client.get(f"/api/progress/{USER}/roadmaps/{roadmap.id}", headers=LEARNER)

    assert response.status_code == 200
    body = response.json()
    assert body["progress"]["user_id"] == USER
    assert body["progress"]["current_level_id"] == str(roadmap.levels[0].id)
    assert body["metrics"]["total_challenges"] == 5
    assert body["metrics"]["completion_percentage"] == 0.0


async def test_progress_of_others_is_staff_only(async_client, roadmap):
    url = f"/api/progress/{USER}/roadmaps/{roadmap.id}"

    assert (await async_client.get(url, headers=OTHER)).status_code == 403
    assert (await async_client.get(url, headers=INSTRUCTOR)).status_code == 200


async def test_unknown_roadmap(async_client):
    response = await async_client.get(f"/api/progress/{USER}/roadmaps/{uuid.uuid4()}", headers=LEARNER)
    assert response.status_code == 404


async def test_complete_and_reopen_challenge(async_client, roadmap):
    first = challenge_ids(roadmap)[0][0]

    completed = await async_client.post(complete_url(roadmap.id, first), headers=LEARNER)
    assert completed.status_code == 200
    body = completed.json()
    assert body["newly_completed"] is True
    assert body["unlocked_achievements"] == ["first_challenge"]
    assert body["metrics"]["completion_percentage"] == 20.0

    reopened = await async_client.delete(complete_url(roadmap.id, first), headers=LEARNER)
    assert reopened.status_code == 200
    assert reopened.json()["progress"]["completed_challenges"] == []
    assert reopened.json()["progress"]["achievements"] == ["first_challenge"]


async def test_only_the_learner_can_complete(async_client, roadmap):
    first = challenge_ids(roadmap)[0][0]

    assert (await async_client.post(complete_url(roadmap.id, first), headers=OTHER)).status_code == 403
    assert (await async_client.post(complete_url(roadmap.id, first), headers=INSTRUCTOR)).status_code == 403


async def test_locked_level_returns_conflict(async_client, roadmap):
    locked = challenge_ids(roadmap)[1][0]

    response = await async_client.post(complete_url(roadmap.id, locked), headers=LEARNER)

    assert response.status_code == 409
    assert response.json()["detail"].endswith("is locked")


async def test_unknown_challenge_returns_not_found(async_client, roadmap):
    response = await async_client.post(complete_url(roadmap.id, uuid.uuid4()), headers=LEARNER)
    assert response.status_code == 404


async def test_set_position(async_client, roadmap):
    level = roadmap.levels[0]
    url = f"/api/progress/{USER}/roadmaps/{roadmap.id}/position"

    moved = await async_client.put(
        url,
        json={"current_level_id": str(level.id), "current_milestone_id": str(level.milestones[1].id)},
        headers=LEARNER,
    )
    assert moved.status_code == 200
    assert moved.json()["progress"]["current_milestone_id"] == str(level.milestones[1].id)

    invalid = await async_client.put(url, json={"current_level_id": str(uuid.uuid4())}, headers=LEARNER)
    assert invalid.status_code == 422

    locked = await async_client.put(
        url, json={"current_level_id": str(roadmap.levels[1].id)}, headers=LEARNER
    )
    assert locked.status_code == 409


async def test_list_user_progress(async_client, roadmap):
    first = challenge_ids(roadmap)[0][0]
    await async_client.post(complete_url(roadmap.id, first), headers=LEARNER)

    response = await async_client.get(f"/api/progress/{USER}", headers=LEARNER)

    assert response.status_code == 200
    assert response.json() == [
        {
            "roadmap_id": str(roadmap.id),
            "roadmap_title": "Backend Developer",
            "completion_percentage": 20.0,
            "completed_levels": 0,
            "total_levels": 2,
            "achievements": ["first_challenge"],
            "updated_at": response.json()[0]["updated_at"],
        }
    ]
    assert (await async_client.get(f"/api/progress/{USER}", headers=OTHER)).status_code == 403


async def test_achievement_catalog(async_client):
    response = await async_client.get("/api/gamification/achievements")

    assert response.status_code == 200
    assert len(response.json()) == 6
    assert response.json()[0]["id"] == "first_challenge"


async def test_achievement_status(async_client, roadmap):
    first = challenge_ids(roadmap)[0][0]
    await async_client.post(complete_url(roadmap.id, first), headers=LEARNER)

    response = await async_client.get(
        f"/api/gamification/achievements/{USER}/roadmaps/{roadmap.id}", headers=LEARNER
    )

    assert response.status_code == 200
    status = {item["id"]: item["unlocked"] for item in response.json()["achievements"]}
    assert status["first_challenge"] is True
    assert status["level_complete"] is False
    assert len(status) == 6


async def test_overview_matches_direct_read_for_private_roadmaps(async_client, roadmap):
    admin = auth_headers("admin-1", "admin")
    first = challenge_ids(roadmap)[0][0]
    await async_client.post(complete_url(roadmap.id, first), headers=LEARNER)

    hidden = await async_client.put(
        f"/api/roadmaps/{roadmap.id}", json={"visibility": "private"}, headers=admin
    )
    assert hidden.status_code == 200

    direct = await async_client.get(f"/api/progress/{USER}/roadmaps/{roadmap.id}", headers=LEARNER)
    overview = await async_client.get(f"/api/progress/{USER}", headers=LEARNER)
    as_admin = await async_client.get(f"/api/progress/{USER}", headers=admin)

    assert direct.status_code == 404
    assert overview.json() == []
    assert [s["roadmap_title"] for s in as_admin.json()] == ["Backend Developer"]
