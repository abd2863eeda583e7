# tests/test_db_and_config.py
from __future__ import annotations

import json
import logging
import sqlite3
import sys

import pytest

from tasknest.app_context import AppContext
from tasknest.repositories.db import Database
from tasknest.tools import migrate
from tasknest.utils.config import load_settings, save_settings
from tasknest.utils.logging_setup import setup_logging
from tasknest.utils.paths import MIGRATIONS_DIR


# --- migrations ------------------------------------------------------------

def test_migrations_are_idempotent(database: Database):
    assert database.run_migrations() == []
    assert database.pending() == []
    assert "0001_projects_tasks.sql" in database.applied()
    tables = {r[0] for r in database.conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"projects", "tasks", "schema_migrations"} <= tables


def test_task_level_is_constrained(db_conn):
    with pytest.raises(sqlite3.IntegrityError):
        db_conn.execute(
            "INSERT INTO tasks(wsID, userID, projectID, name, taskLevel, createdAt, modifiedAt) "
            "VALUES (1, 1, 1, 'x', 5, '2024-01-01', '2024-01-01')"
        )


def test_migrate_cli(tmp_path, capsys):
    db_file = tmp_path / "cli.db"
    assert migrate.main(["status", "--db", str(db_file)]) == 1
    assert migrate.main(["up", "--db", str(db_file)]) == 0
    assert "applied 0001_projects_tasks.sql" in capsys.readouterr().out
    assert migrate.main(["status", "--db", str(db_file)]) == 0
    assert migrate.main(["up", "--db", str(db_file)]) == 0
    assert "Nothing to apply." in capsys.readouterr().out


def test_migrations_dir_ships_sql():
    assert sorted(p.name for p in MIGRATIONS_DIR.glob("*.sql"))[0] == "0001_projects_tasks.sql"


# --- pool & transactions ---------------------------------------------------

def test_pool_reuses_connections(database: Database):
    with database.connection() as first:
        pass
    with database.connection() as second:
        assert second is first


def test_pool_is_bounded(tmp_path):
    db = Database(tmp_path / "pool.db", pool_size=1, timeout=0.1)
    try:
        with db.connection():
            with pytest.raises(sqlite3.OperationalError, match="pool exhausted"):
                with db.connection():
                    pass
        with db.connection():
            pass
    finally:
        db.close()


def test_pool_size_must_be_positive(tmp_path):
    with pytest.raises(ValueError):
        Database(tmp_path / "x.db", pool_size=0)


def test_transaction_rolls_back_on_error(database: Database, projects_repo):
    with pytest.raises(RuntimeError):
        with database.transaction() as con:
            projects_repo.create_project({"userID": 1, "wsID": 1, "name": "Ghost"}, con=con)
            raise RuntimeError("abort")
    assert projects_repo.list_projects() == []

    with database.transaction() as con:
        projects_repo.create_project({"userID": 1, "wsID": 1, "name": "Kept"}, con=con)
    assert [p["name"] for p in projects_repo.list_projects()] == ["Kept"]


def test_closed_database_refuses_connections(tmp_path):
    db = Database(tmp_path / "closed.db")
    db.close()
    with pytest.raises(sqlite3.ProgrammingError):
        with db.connection():
            pass


def test_app_context_migrates(tmp_path):
    settings = load_settings(tmp_path / "none.json")
    ctx = AppContext.create(settings, db_path=tmp_path / "ctx.db")
    try:
        assert ctx.db.pending() == []
        assert ctx.db_path == tmp_path / "ctx.db"
    finally:
        ctx.close()


# --- settings ---------------------------------------------------------------

def test_defaults_when_no_file(tmp_path, monkeypatch):
    for var in ("TASKNEST_DB", "TASKNEST_API_URL", "TASKNEST_HOST", "TASKNEST_PORT"):
        monkeypatch.delenv(var, raising=False)
    s = load_settings(tmp_path / "missing.json")
    assert s["server"]["port"] == 5000
    assert s["database"]["pool_size"] == 10
    assert s["client"]["base_url"].endswith("/api")
    assert len(s["users"]) == 6


def test_file_values_merge_over_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("TASKNEST_PORT", raising=False)
    path = tmp_path / "settings.json"
    save_settings({"server": {"port": 8080}, "users": [{"id": "9", "name": "Solo"}]}, path)
    s = load_settings(path)
    assert s["server"] == {"host": "127.0.0.1", "port": 8080}
    assert s["users"] == [{"id": "9", "name": "Solo"}]
    assert s["client"]["timeout"] == 10


def test_env_overrides_win(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"server": {"port": 8080}}))
    monkeypatch.setenv("TASKNEST_PORT", "9000")
    monkeypatch.setenv("TASKNEST_DB", str(tmp_path / "env.db"))
    s = load_settings(path)
    assert s["server"]["port"] == 9000
    assert s["database"]["path"] == str(tmp_path / "env.db")


def test_bad_env_value_is_ignored(tmp_path, monkeypatch, caplog):
    monkeypatch.setenv("TASKNEST_PORT", "eighty")
    with caplog.at_level(logging.WARNING, logger="tasknest.utils.config"):
        s = load_settings(tmp_path / "missing.json")
    assert s["server"]["port"] == 5000
    assert "TASKNEST_PORT" in caplog.text


def test_unreadable_file_falls_back_to_defaults(tmp_path, monkeypatch, caplog):
    monkeypatch.delenv("TASKNEST_PORT", raising=False)
    path = tmp_path / "settings.json"
    path.write_text("{ not json")
    with caplog.at_level(logging.WARNING, logger="tasknest.utils.config"):
        s = load_settings(path)
    assert s["server"]["port"] == 5000
    assert "Unreadable settings file" in caplog.text


# --- logging ---------------------------------------------------------------

def test_setup_logging_writes_file_and_is_repeatable(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKNEST_LOG_LEVEL", "debug")
    root = logging.getLogger()
    saved_handlers, saved_level, saved_hook = list(root.handlers), root.level, sys.excepthook
    try:
        logfile = setup_logging("tasknest-test", log_dir=tmp_path)
        setup_logging("tasknest-test", log_dir=tmp_path)
        ours = [h for h in root.handlers if h not in saved_handlers]
        assert len(ours) == 2
        assert root.level == logging.DEBUG

        logging.getLogger("tasknest.test").debug("hello from the test")
        for h in ours:
            h.flush()
        assert "hello from the test" in logfile.read_text(encoding="utf-8")
    finally:
        for h in [h for h in root.handlers if h not in saved_handlers]:
            root.removeHandler(h)
            h.close()
        root.setLevel(saved_level)
        sys.excepthook = saved_hook
