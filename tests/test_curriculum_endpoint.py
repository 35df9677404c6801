from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import reload_app


def _create(client, n: int = 4) -> dict:
    items = [{"id": f"item_{i}", "type": "lesson" if i % 2 else "quiz", "order": i, "estimatedMinutes": 20} for i in range(1, n + 1)]
    r = client.post("/curricula", json={"studentId": "s1", "coachId": "c1", "items": items})
    assert r.status_code == 200
    return r.json()


def _statuses(doc: dict) -> dict[str, str]:
    return {it["id"]: it["status"] for it in doc["items"]}


def test_create_unlocks_first_item(tmp_path):
    _storage, app_module = reload_app(tmp_path)
    client = TestClient(app_module.app)

    doc = _create(client)
    assert _statuses(doc) == {"item_1": "unlocked", "item_2": "locked", "item_3": "locked", "item_4": "locked"}
    assert doc["items"][0]["unlockedAt"]
    assert client.get(f"/curricula/{doc['id']}").json() == doc
    assert [c["id"] for c in client.get("/students/s1/curricula").json()["curricula"]] == [doc["id"]]
    assert client.get(f"/curricula/{doc['id']}/next").json()["item"]["id"] == "item_1"


def test_start_and_complete_walk(tmp_path):
    _storage, app_module = reload_app(tmp_path)
    client = TestClient(app_module.app)
    cid = _create(client)["id"]

    locked = client.post(f"/curricula/{cid}/items/item_2/start")
    assert locked.status_code == 409

    started = client.post(f"/curricula/{cid}/items/item_1/start", json={"userId": "s1"}).json()
    assert started["item"]["status"] == "in_progress"
    assert started["next"] is None

    done = client.post(f"/curricula/{cid}/items/item_1/complete").json()
    assert done["status"] == "ok"
    assert done["item"]["completedAt"]
    assert done["next"]["id"] == "item_2"
    assert _statuses(done["curriculum"]) == {
        "item_1": "completed",
        "item_2": "unlocked",
        "item_3": "locked",
        "item_4": "locked",
    }

    again = client.post(f"/curricula/{cid}/items/item_1/complete")
    assert again.status_code == 200
    assert again.json()["status"] == "already_completed"
    assert again.json()["curriculum"] == done["curriculum"]

    assert client.post(f"/curricula/{cid}/items/ghost/complete").status_code == 404
    assert client.post(f"/curricula/{cid}/items/ghost/start").status_code == 404

    prog = client.get(f"/curricula/{cid}/progress").json()
    assert prog["studentId"] == "s1"
    assert prog["totalItems"] == 4 and prog["completedItems"] == 1
    assert prog["progressPercentage"] == 25
    assert prog["estimatedTimeRemaining"] == 60
    assert prog["lastCompletedItem"]["id"] == "item_1"


def test_edit_items(tmp_path):
    _storage, app_module = reload_app(tmp_path)
    client = TestClient(app_module.app)
    cid = _create(client, n=2)["id"]

    added = client.post(f"/curricula/{cid}/items", json={"id": "extra", "type": "custom_quiz", "title": "Bonus"})
    assert added.status_code == 200
    assert added.json()["items"][-1] == {
        "id": "extra",
        "type": "custom_quiz",
        "contentId": None,
        "order": 3,
        "status": "locked",
        "title": "Bonus",
        "estimatedMinutes": None,
        "unlockedAt": None,
        "completedAt": None,
    }
    assert client.post(f"/curricula/{cid}/items", json={"id": "extra"}).status_code == 409
    assert client.post(f"/curricula/{cid}/items", json={"type": "podcast"}).status_code == 400

    reordered = client.post(f"/curricula/{cid}/reorder", json={"itemIds": ["extra", "item_1", "item_2"], "userId": "c1"})
    assert reordered.status_code == 200
    assert _statuses(reordered.json()) == {"extra": "unlocked", "item_1": "locked", "item_2": "locked"}
    assert reordered.json()["lastModifiedBy"] == "c1"
    assert client.post(f"/curricula/{cid}/reorder", json={"itemIds": ["extra"]}).status_code == 400

    removed = client.delete(f"/curricula/{cid}/items/extra")
    assert removed.status_code == 200
    assert _statuses(removed.json()) == {"item_1": "unlocked", "item_2": "locked"}
    assert client.delete(f"/curricula/{cid}/items/extra").status_code == 404


def test_unknown_curriculum_is_404(tmp_path):
    _storage, app_module = reload_app(tmp_path)
    client = TestClient(app_module.app)
    assert client.get("/curricula/nope").status_code == 404
    assert client.post("/curricula/nope/items/item_1/complete").status_code == 404
    assert client.get("/curricula/nope/progress").status_code == 404
    assert client.get("/students/nobody/curricula").json() == {"curricula": []}


def test_coach_listing_and_curriculum_delete(tmp_path):
    _storage, app_module = reload_app(tmp_path)
    client = TestClient(app_module.app)
    first = _create(client)
    second = client.post("/curricula", json={"studentId": "s2", "coachId": "c1", "items": []}).json()
    client.post("/curricula", json={"studentId": "s3", "coachId": "c9", "items": []})

    mine = client.get("/coaches/c1/curricula").json()["curricula"]
    assert {c["id"] for c in mine} == {first["id"], second["id"]}
    assert client.get("/coaches/nobody/curricula").json() == {"curricula": []}

    r = client.delete(f"/curricula/{first['id']}")
    assert r.status_code == 200
    assert r.json() == {"success": True, "curriculumId": first["id"]}
    assert client.get(f"/curricula/{first['id']}").status_code == 404
    assert client.delete(f"/curricula/{first['id']}").status_code == 404
    assert [c["id"] for c in client.get("/coaches/c1/curricula").json()["curricula"]] == [second["id"]]
    assert client.get("/students/s1/curricula").json() == {"curricula": []}
