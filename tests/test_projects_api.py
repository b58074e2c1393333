from __future__ import annotations

import pytest

from _helpers import bearer


@pytest.fixture
def alice(client):
    return bearer(client, "alice@example.com")


@pytest.fixture
def bob(client):
    return bearer(client, "bob@example.com")


def _create(client, headers, **body):
    r = client.post("/api/v1/projects", json=body, headers=headers)
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.get_json()["data"]


def test_projects_require_access_token(client):
    assert client.get("/api/v1/projects").status_code == 401
    assert client.post("/api/v1/projects", json={"name": "Work"}).status_code == 401


def test_create_and_get(client, alice):
    project = _create(client, alice, name="  Work ", description="day job")
    assert project["name"] == "Work"
    assert project["description"] == "day job"
    assert project["task_count"] == 0

    r = client.get(f"/api/v1/projects/{project['id']}", headers=alice)
    assert r.status_code == 200
    assert r.get_json()["data"]["id"] == project["id"]


def test_create_validation(client, alice):
    r = client.post("/api/v1/projects", json={"name": "   "}, headers=alice)
    assert r.status_code == 422
    assert "name" in r.get_json()["details"]


def test_duplicate_name_is_per_account(client, alice, bob):
    _create(client, alice, name="Work")
    r = client.post("/api/v1/projects", json={"name": "work"}, headers=alice)
    assert r.status_code == 409
    assert r.get_json()["error"] == "CONFLICT"
    # another account may use the same name
    _create(client, bob, name="Work")


def test_other_accounts_projects_are_invisible(client, alice, bob):
    project = _create(client, alice, name="Private")
    url = f"/api/v1/projects/{project['id']}"

    assert client.get(url, headers=bob).status_code == 404
    assert client.patch(url, json={"name": "Mine now"}, headers=bob).status_code == 404
    assert client.delete(url, headers=bob).status_code == 404

    listing = client.get("/api/v1/projects", headers=bob).get_json()
    assert listing["data"] == []
    assert listing["meta"]["total"] == 0

    r = client.get(url, headers=alice)
    assert r.get_json()["data"]["name"] == "Private"


def test_list_paginates_and_sorts(client, alice):
    for name in ("b", "a", "c"):
        _create(client, alice, name=name)

    r = client.get("/api/v1/projects?sort=name&limit=2", headers=alice)
    body = r.get_json()
    assert [p["name"] for p in body["data"]] == ["a", "b"]
    assert body["meta"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    r = client.get("/api/v1/projects?sort=name&limit=2&page=2", headers=alice)
    assert [p["name"] for p in r.get_json()["data"]] == ["c"]

    assert client.get("/api/v1/projects?sort=owner", headers=alice).status_code == 400
    assert client.get("/api/v1/projects?page=x", headers=alice).status_code == 400


def test_rename(client, alice):
    work = _create(client, alice, name="Work")
    _create(client, alice, name="Home")
    url = f"/api/v1/projects/{work['id']}"

    r = client.patch(url, json={"name": "Office"}, headers=alice)
    assert r.status_code == 200
    assert r.get_json()["data"]["name"] == "Office"

    assert client.patch(url, json={"name": "home"}, headers=alice).status_code == 409
    assert client.patch(url, json={}, headers=alice).status_code == 422


def test_task_count_covers_open_tasks(client, alice):
    project = _create(client, alice, name="Work")
    ids = []
    for title in ("one", "two"):
        r = client.post("/api/v1/tasks", json={"title": title, "project_id": project["id"]}, headers=alice)
        ids.append(r.get_json()["data"]["id"])
    client.patch(f"/api/v1/tasks/{ids[0]}", json={"completed": True}, headers=alice)

    listing = client.get("/api/v1/projects", headers=alice).get_json()
    assert listing["data"][0]["task_count"] == 1


def test_delete_keeps_tasks_without_a_project(client, alice):
    project = _create(client, alice, name="Work")
    task = client.post(
        "/api/v1/tasks", json={"title": "write report", "project_id": project["id"]}, headers=alice
    ).get_json()["data"]

    assert client.delete(f"/api/v1/projects/{project['id']}", headers=alice).status_code == 204
    assert client.get(f"/api/v1/projects/{project['id']}", headers=alice).status_code == 404

    r = client.get(f"/api/v1/tasks/{task['id']}", headers=alice)
    assert r.status_code == 200
    assert r.get_json()["data"]["project_id"] is None


def test_registration_creates_no_projects(client, alice):
    assert client.get("/api/v1/projects", headers=alice).get_json()["meta"]["total"] == 0
