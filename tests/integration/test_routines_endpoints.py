"""
Интеграционные тесты эндпоинтов /api/v1/routines/*.

Стратегия: настоящая SQLite-БД (conftest.db_client), авторизация настоящим JWT.
"""

import pytest

from tests.conftest import make_auth_headers

pytestmark = pytest.mark.integration

PUSH_DAY = {"name": "Push Day", "level": "beginner", "category": "upper_body"}


async def create_routine(db_client, user, exercises=None, **overrides):
    body = dict(PUSH_DAY, exercises=exercises or [], **overrides)
    response = await db_client.post("/api/v1/routines", json=body, headers=make_auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Программы
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_routine_with_exercises(db_client, db_users, db_exercises):
    data = await create_routine(
        db_client,
        db_users["user"],
        exercises=[{"exerciseId": 5, "sets": 4, "reps": 8}, {"exerciseId": 7}],
    )

    assert data["name"] == "Push Day"
    assert data["level"] == "beginner"
    assert data["createdUser"] == db_users["user"].id
    assert [(e["exerciseId"], e["orderIndex"]) for e in data["exercises"]] == [(5, 0), (7, 1)]
    assert data["exercises"][0]["exerciseName"] == db_exercises[5].name
    assert data["exercises"][0]["sets"] == 4
    assert data["exercises"][1]["restSeconds"] == 60


@pytest.mark.asyncio
async def test_create_routine_invalid_category_returns_400(db_client, db_users):
    response = await db_client.post(
        "/api/v1/routines",
        json=dict(PUSH_DAY, category="arms"),
        headers=make_auth_headers(db_users["user"]),
    )

    assert response.status_code == 400
    assert response.json()["errorCode"] == "VALIDATION_ERROR_CATEGORY"


@pytest.mark.asyncio
async def test_create_routine_duplicate_positions_returns_409(db_client, db_users, db_exercises):
    response = await db_client.post(
        "/api/v1/routines",
        json=dict(PUSH_DAY, exercises=[{"exerciseId": 5, "orderIndex": 0}, {"exerciseId": 7, "orderIndex": 0}]),
        headers=make_auth_headers(db_users["user"]),
    )
    assert response.status_code == 409

    listed = await db_client.get(
        "/api/v1/routines", params={"userId": db_users["user"].id}, headers=make_auth_headers(db_users["user"])
    )
    assert listed.json()["total"] == 0


@pytest.mark.asyncio
async def test_negative_order_index_rejected(db_client, db_users, db_exercises):
    response = await db_client.post(
        "/api/v1/routines",
        json=dict(PUSH_DAY, exercises=[{"exerciseId": 5, "orderIndex": -1}]),
        headers=make_auth_headers(db_users["user"]),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_routines_require_authentication(db_client):
    response = await db_client.get("/api/v1/routines")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_list_routines_paginates(db_client, db_users):
    for n in range(3):
        await create_routine(db_client, db_users["user"], name=f"Routine {n}")

    response = await db_client.get(
        "/api/v1/routines",
        params={"userId": db_users["user"].id, "page": 2, "pageSize": 2},
        headers=make_auth_headers(db_users["user"]),
    )

    data = response.json()
    assert response.status_code == 200
    assert data["total"] == 3
    assert data["pages"] == 2
    assert data["page"] == 2
    assert len(data["items"]) == 1


@pytest.mark.asyncio
async def test_get_missing_routine_returns_404(db_client, db_users):
    response = await db_client.get("/api/v1/routines/999", headers=make_auth_headers(db_users["user"]))

    assert response.status_code == 404
    assert response.json()["errorCode"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_update_foreign_routine_returns_403(db_client, db_users):
    routine = await create_routine(db_client, db_users["user"])

    response = await db_client.put(
        f"/api/v1/routines/{routine['id']}",
        json=dict(PUSH_DAY, name="Stolen"),
        headers=make_auth_headers(db_users["other"]),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_can_update_any_routine(db_client, db_users):
    routine = await create_routine(db_client, db_users["user"])

    response = await db_client.put(
        f"/api/v1/routines/{routine['id']}",
        json=dict(PUSH_DAY, name="Push Day (reviewed)", estimatedDuration=45),
        headers=make_auth_headers(db_users["admin"]),
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Push Day (reviewed)"
    assert response.json()["estimatedDuration"] == 45


@pytest.mark.asyncio
async def test_delete_routine(db_client, db_users, db_exercises):
    routine = await create_routine(db_client, db_users["user"], exercises=[{"exerciseId": 5}])
    headers = make_auth_headers(db_users["user"])

    response = await db_client.delete(f"/api/v1/routines/{routine['id']}", headers=headers)
    assert response.status_code == 200

    response = await db_client.get(f"/api/v1/routines/{routine['id']}", headers=headers)
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Слоты
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_single_exercise_and_conflict(db_client, db_users, db_exercises):
    routine = await create_routine(db_client, db_users["user"])
    headers = make_auth_headers(db_users["user"])
    url = f"/api/v1/routines/{routine['id']}/exercises"

    first = await db_client.post(url, json={"exerciseId": 5, "orderIndex": 0, "reps": 10}, headers=headers)
    assert first.status_code == 201
    assert first.json()["exerciseName"] == db_exercises[5].name

    duplicate = await db_client.post(url, json={"exerciseId": 7, "orderIndex": 0}, headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["errorCode"] == "CONFLICT"


@pytest.mark.asyncio
async def test_add_unknown_exercise_returns_404(db_client, db_users, db_exercises):
    routine = await create_routine(db_client, db_users["user"])

    response = await db_client.post(
        f"/api/v1/routines/{routine['id']}/exercises",
        json={"exerciseId": 12345},
        headers=make_auth_headers(db_users["user"]),
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_batch_add_reports_per_item(db_client, db_users, db_exercises):
    routine = await create_routine(db_client, db_users["user"], exercises=[{"exerciseId": 5}])

    response = await db_client.post(
        f"/api/v1/routines/{routine['id']}/exercises/batch",
        json=[{"exerciseId": 7}, {"exerciseId": 9, "orderIndex": 0}, {"exerciseId": 404}],
        headers=make_auth_headers(db_users["user"]),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert [r["success"] for r in data["results"]] == [True, False, False]
    assert data["results"][0]["slot"]["orderIndex"] == 1
    assert data["results"][1]["error"]


@pytest.mark.asyncio
async def test_insert_reorder_update_delete(db_client, db_users, db_exercises):
    routine = await create_routine(
        db_client, db_users["user"], exercises=[{"exerciseId": 5}, {"exerciseId": 7}]
    )
    headers = make_auth_headers(db_users["user"])
    base = f"/api/v1/routines/{routine['id']}/exercises"

    inserted = await db_client.post(f"{base}/insert", params={"position": 0}, json={"exerciseId": 9}, headers=headers)
    assert inserted.status_code == 201
    assert inserted.json()["orderIndex"] == 0

    detail = (await db_client.get(f"/api/v1/routines/{routine['id']}", headers=headers)).json()
    assert [(e["exerciseId"], e["orderIndex"]) for e in detail["exercises"]] == [(9, 0), (5, 1), (7, 2)]

    slot_ids = [e["id"] for e in detail["exercises"]]
    reordered = await db_client.put(f"{base}/order", json={"slotIds": list(reversed(slot_ids))}, headers=headers)
    assert reordered.status_code == 200
    assert [e["exerciseId"] for e in reordered.json()] == [7, 5, 9]

    updated = await db_client.put(
        f"{base}/{slot_ids[0]}",
        json={"exerciseId": 11, "orderIndex": 10, "sets": 5, "reps": 5},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["exerciseName"] == db_exercises[11].name
    assert updated.json()["orderIndex"] == 10

    deleted = await db_client.delete(f"{base}/{slot_ids[1]}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["id"] == slot_ids[1]

    detail = (await db_client.get(f"/api/v1/routines/{routine['id']}", headers=headers)).json()
    assert [(e["exerciseId"], e["orderIndex"]) for e in detail["exercises"]] == [(7, 0), (11, 10)]


@pytest.mark.asyncio
async def test_reorder_with_incomplete_list_returns_400(db_client, db_users, db_exercises):
    routine = await create_routine(
        db_client, db_users["user"], exercises=[{"exerciseId": 5}, {"exerciseId": 7}]
    )

    response = await db_client.put(
        f"/api/v1/routines/{routine['id']}/exercises/order",
        json={"slotIds": [routine["exercises"][0]["id"]]},
        headers=make_auth_headers(db_users["user"]),
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_slot_from_other_routine_returns_404(db_client, db_users, db_exercises):
    first = await create_routine(db_client, db_users["user"], exercises=[{"exerciseId": 5}])
    second = await create_routine(db_client, db_users["user"], exercises=[{"exerciseId": 7}])

    response = await db_client.delete(
        f"/api/v1/routines/{first['id']}/exercises/{second['exercises'][0]['id']}",
        headers=make_auth_headers(db_users["user"]),
    )

    assert response.status_code == 404
