# Rev 0.2.0

"""Pytest fixtures for tasknest (Rev 0.2.0)"""
from __future__ import annotations
import pytest
from pathlib import Path
from typing import Any, Dict

from fastapi.testclient import TestClient

from tasknest.api.app import create_app
from tasknest.repositories.db import Database
from tasknest.repositories.sqlite_project_repository import SQLiteProjectRepository
from tasknest.repositories.sqlite_task_repository import SQLiteTaskRepository


@pytest.fixture()
def database(tmp_path: Path):
    db = Database(tmp_path / "test.db", pool_size=4)
    try:
        db.run_migrations()
        yield db
    finally:
        db.close()


@pytest.fixture()
def db_conn(database: Database):
    return database.conn


@pytest.fixture()
def projects_repo(database: Database) -> SQLiteProjectRepository:
    return SQLiteProjectRepository(database)


@pytest.fixture()
def tasks_repo(database: Database) -> SQLiteTaskRepository:
    return SQLiteTaskRepository(database)


@pytest.fixture()
def client(database: Database):
    with TestClient(create_app(database)) as c:
        yield c


# --- seed helpers ----------------------------------------------------------

def project_payload(**overrides) -> Dict[str, Any]:
    body: Dict[str, Any] = {"userID": 1, "name": "X", "wsID": 1}
    body.update(overrides)
    return body


def task_payload(project_id: int, name: str, level: int = 1, parent_id: int | None = None, **overrides) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "wsID": 1,
        "userID": 1,
        "projectID": project_id,
        "name": name,
        "taskLevel": level,
    }
    if parent_id is not None:
        body["parentID"] = parent_id
    body.update(overrides)
    return body


@pytest.fixture()
def make_project(client: TestClient):
    def _make(**overrides) -> Dict[str, Any]:
        r = client.post("/projects", json=project_payload(**overrides))
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture()
def make_task(client: TestClient):
    def _make(project_id: int, name: str, level: int = 1, parent_id: int | None = None, **overrides) -> Dict[str, Any]:
        r = client.post("/tasks", json=task_payload(project_id, name, level, parent_id, **overrides))
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture()
def seeded_tree(make_project, make_task) -> Dict[str, Any]:
    """One project: T1 > S1 > A1 > X1, T1 > S2, T2."""
    project = make_project(name="Alpha")
    pid = project["id"]
    t1 = make_task(pid, "T1")
    s1 = make_task(pid, "S1", 2, t1["id"])
    a1 = make_task(pid, "A1", 3, s1["id"])
    x1 = make_task(pid, "X1", 4, a1["id"])
    s2 = make_task(pid, "S2", 2, t1["id"], status="complete", info={"completedAt": "2024-01-02", "owner": "amy"})
    t2 = make_task(pid, "T2")
    return {"project": project, "t1": t1, "s1": s1, "a1": a1, "x1": x1, "s2": s2, "t2": t2}
