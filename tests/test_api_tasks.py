# tests/test_api_tasks.py
from __future__ import annotations

import sqlite3

import pytest

from conftest import task_payload


def test_level_pointers_are_back_filled(client, seeded_tree):
    pid = seeded_tree["project"]["id"]
    t1, s1, a1, x1 = (seeded_tree[k] for k in ("t1", "s1", "a1", "x1"))

    assert (t1["parentID"], t1["level1ID"], t1["level2ID"]) == (pid, t1["id"], 0)
    assert (s1["parentID"], s1["level1ID"], s1["level2ID"], s1["level3ID"]) == (t1["id"], t1["id"], s1["id"], 0)
    assert (a1["parentID"], a1["level1ID"], a1["level2ID"], a1["level3ID"], a1["level4ID"]) == (
        s1["id"], t1["id"], s1["id"], a1["id"], 0,
    )
    assert (x1["parentID"], x1["level1ID"], x1["level2ID"], x1["level3ID"], x1["level4ID"]) == (
        a1["id"], t1["id"], s1["id"], a1["id"], x1["id"],
    )


def test_create_applies_defaults(client, make_project, make_task):
    pid = make_project()["id"]
    t = make_task(pid, "Defaults")
    assert t["taskLevel"] == 1
    assert t["status"] == "todo"
    assert t["taskType"] == "task"
    assert t["priority"] == "low"
    assert t["info"] == {}
    assert t["estPrevHours"] == 0
    assert t["expanded"] is True
    assert t["dueDate"] is None

    s = make_task(pid, "Sub", 2, t["id"])
    assert s["estPrevHours"] == []


def test_client_supplied_pointers_are_ignored(client, make_project, make_task):
    pid = make_project()["id"]
    t = make_task(pid, "T", level1ID=777, level2ID=5)
    assert (t["level1ID"], t["level2ID"]) == (t["id"], 0)


@pytest.mark.parametrize("missing", ["wsID", "userID", "projectID", "name"])
def test_create_requires_fields(client, make_project, missing):
    body = task_payload(make_project()["id"], "T")
    del body[missing]
    r = client.post("/tasks", json=body)
    assert r.status_code == 400
    assert missing in r.json()["error"]


def test_subtask_requires_existing_parent(client, seeded_tree, make_project):
    pid = seeded_tree["project"]["id"]
    t1 = seeded_tree["t1"]

    r = client.post("/tasks", json=task_payload(pid, "No parent", 2))
    assert r.status_code == 400
    assert "parentID" in r.json()["error"]

    r = client.post("/tasks", json=task_payload(pid, "Ghost parent", 2, 9999))
    assert r.status_code == 400
    assert r.json()["error"] == "Parent task not found"

    # parent of the wrong level
    r = client.post("/tasks", json=task_payload(pid, "Skips a level", 3, t1["id"]))
    assert r.status_code == 400

    # parent in another project
    other = make_project(name="Other")["id"]
    r = client.post("/tasks", json=task_payload(other, "Cross project", 2, t1["id"]))
    assert r.status_code == 400


def test_create_in_missing_project_is_404(client):
    r = client.post("/tasks", json=task_payload(999, "T"))
    assert r.status_code == 404
    assert r.json() == {"error": "Project not found"}


def test_invalid_status_and_level(client, make_project):
    pid = make_project()["id"]
    r = client.post("/tasks", json=task_payload(pid, "T", status="INVALID"))
    assert r.status_code == 400
    assert "Invalid status" in r.json()["error"]
    assert client.post("/tasks", json=task_payload(pid, "T", 5, 1)).status_code == 400


def test_status_aliases_are_normalized(client, make_project, make_task):
    pid = make_project()["id"]
    assert make_task(pid, "T", status="IN PROGRESS")["status"] == "in-progress"
    assert make_task(pid, "U", status="inprogress")["status"] == "in-progress"


def test_info_accepts_object_or_json_text(client, make_project, make_task):
    pid = make_project()["id"]
    assert make_task(pid, "A", info={"tag": "x"})["info"] == {"tag": "x"}
    assert make_task(pid, "B", info='{"tag": "y"}')["info"] == {"tag": "y"}
    r = client.post("/tasks", json=task_payload(pid, "C", info="{oops"))
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid JSON format for info"


def test_est_prev_hours_list_only_on_subtasks(client, make_project, make_task):
    pid = make_project()["id"]
    r = client.post("/tasks", json=task_payload(pid, "T", estPrevHours=[1, 2]))
    assert r.status_code == 400
    assert "estPrevHours" in r.json()["error"]


def test_get_and_list(client, seeded_tree):
    pid = seeded_tree["project"]["id"]
    t2 = seeded_tree["t2"]
    assert client.get(f"/tasks/{t2['id']}").json() == t2
    assert client.get("/tasks/999").status_code == 404

    flat = client.get(f"/tasks/project/{pid}").json()
    assert [t["name"] for t in flat] == ["T1", "S1", "A1", "X1", "S2", "T2"]
    assert len(client.get("/tasks").json()) == 6
    assert client.get("/tasks/project/999").json() == []


def test_put_updates_fields(client, seeded_tree):
    t1 = seeded_tree["t1"]
    r = client.put(f"/tasks/{t1['id']}", json={"name": "Renamed", "status": "review", "dueDate": "2024-06-01"})
    assert r.status_code == 200
    body = r.json()
    assert (body["name"], body["status"], body["dueDate"]) == ("Renamed", "review", "2024-06-01")
    assert body["level1ID"] == t1["id"]
    assert body["createdAt"] == t1["createdAt"]

    r = client.put(f"/tasks/{t1['id']}", json={"dueDate": None})
    assert r.json()["dueDate"] is None


def test_put_invalid_status_leaves_record_unchanged(client, seeded_tree):
    t1 = seeded_tree["t1"]
    r = client.put(f"/tasks/{t1['id']}", json={"status": "INVALID", "name": "Should not stick"})
    assert r.status_code == 400
    assert client.get(f"/tasks/{t1['id']}").json() == t1


def test_put_errors(client, seeded_tree):
    t1 = seeded_tree["t1"]
    assert client.put("/tasks/999", json={"name": "x"}).status_code == 404
    assert client.put(f"/tasks/{t1['id']}", json={}).status_code == 400
    assert client.put(f"/tasks/{t1['id']}", json={"name": None}).status_code == 400
    assert client.put(f"/tasks/{t1['id']}", json={"info": "{bad"}).status_code == 400


def test_estimate_changes_are_recorded(client, seeded_tree):
    t1, s1 = seeded_tree["t1"], seeded_tree["s1"]

    body = client.put(f"/tasks/{s1['id']}", json={"estHours": 4}).json()
    body = client.put(f"/tasks/{s1['id']}", json={"estHours": 6}).json()
    assert body["estHours"] == 6
    assert body["estPrevHours"] == [0, 4]

    # same value again: history untouched
    body = client.put(f"/tasks/{s1['id']}", json={"estHours": 6}).json()
    assert body["estPrevHours"] == [0, 4]

    body = client.put(f"/tasks/{t1['id']}", json={"estHours": 8}).json()
    body = client.put(f"/tasks/{t1['id']}", json={"estHours": 10}).json()
    assert body["estPrevHours"] == 8


def test_explicit_history_wins_over_tracking(client, seeded_tree):
    s1 = seeded_tree["s1"]
    body = client.put(f"/tasks/{s1['id']}", json={"estHours": 5, "estPrevHours": [9]}).json()
    assert body["estPrevHours"] == [9]


def test_delete_leaves_descendants_in_place(client, seeded_tree):
    pid = seeded_tree["project"]["id"]
    s1 = seeded_tree["s1"]
    r = client.delete(f"/tasks/{s1['id']}")
    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert client.delete(f"/tasks/{s1['id']}").status_code == 404

    names = [t["name"] for t in client.get(f"/tasks/project/{pid}").json()]
    assert names == ["T1", "A1", "X1", "S2", "T2"]

    # the orphaned branch drops out of the tree
    roots = client.get(f"/projects/{pid}/tasks/tree").json()
    assert [s["name"] for s in roots[0]["subtasks"]] == ["S2"]


def test_storage_failure_is_500(client, seeded_tree, monkeypatch):
    from tasknest.repositories.sqlite_task_repository import SQLiteTaskRepository

    def boom(self, *args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(SQLiteTaskRepository, "list_tasks", boom)
    r = client.get("/tasks")
    assert r.status_code == 500
    assert r.json() == {"error": "Database error"}


@pytest.mark.parametrize("hours", ["inf", "nan", "-inf", "Infinity"])
def test_non_finite_hours_are_rejected(client, make_project, hours):
    pid = make_project()["id"]
    r = client.post("/tasks", json=task_payload(pid, "T", estHours=hours))
    assert r.status_code == 400
    assert "estHours" in r.json()["error"]
    assert client.get(f"/tasks/project/{pid}").json() == []


def test_non_finite_history_is_rejected(client, seeded_tree):
    s1 = seeded_tree["s1"]
    r = client.put(f"/tasks/{s1['id']}", json={"estPrevHours": "[1, NaN]"})
    assert r.status_code == 400
    assert "estPrevHours" in r.json()["error"]
    assert client.get(f"/tasks/{s1['id']}").json() == s1


def test_boolean_ids_are_rejected(client, make_project):
    pid = make_project()["id"]
    r = client.post("/tasks", json=task_payload(pid, "T", userID=True))
    assert r.status_code == 400
    assert "userID" in r.json()["error"]


def test_body_must_be_an_object(client):
    r = client.post("/tasks", json=[{"name": "T"}])
    assert r.status_code == 400
    assert r.json()["error"].startswith("Malformed request")


@pytest.mark.parametrize("field, value", [("taskLevel", 2), ("parentID", 12345), ("projectID", 999)])
def test_put_cannot_move_a_task(client, seeded_tree, field, value):
    t2 = seeded_tree["t2"]
    r = client.put(f"/tasks/{t2['id']}", json={field: value, "name": "Moved"})
    assert r.status_code == 400
    assert field in r.json()["error"]
    assert client.get(f"/tasks/{t2['id']}").json() == t2


def test_put_repeating_placement_is_accepted(client, seeded_tree):
    s1 = seeded_tree["s1"]
    body = {"taskLevel": 2, "parentID": s1["parentID"], "projectID": s1["projectID"], "name": "Same place"}
    r = client.put(f"/tasks/{s1['id']}", json=body)
    assert r.status_code == 200
    assert r.json()["name"] == "Same place"
    assert r.json()["level2ID"] == s1["id"]


def test_put_ignores_pointer_columns(client, seeded_tree):
    a1 = seeded_tree["a1"]
    r = client.put(f"/tasks/{a1['id']}", json={"level1ID": 99, "level3ID": 0, "name": "Kept pointers"})
    assert r.status_code == 200
    body = r.json()
    for key in ("parentID", "level1ID", "level2ID", "level3ID", "level4ID"):
        assert body[key] == a1[key]


def test_put_pointer_columns_only_is_a_no_op_error(client, seeded_tree):
    t1 = seeded_tree["t1"]
    r = client.put(f"/tasks/{t1['id']}", json={"level2ID": 5})
    assert r.status_code == 400
    assert r.json()["error"] == "No valid fields to update"
