# Rev 0.2.0
from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, List, Optional

from .db import DbOrConn, connection_scope, utc_now_iso


# Writable columns; id/createdAt/modifiedAt are server-managed.
TASK_COLUMNS = (
    "wsID",
    "userID",
    "projectID",
    "name",
    "description",
    "taskLevel",
    "status",
    "taskType",
    "priority",
    "parentID",
    "level1ID",
    "level2ID",
    "level3ID",
    "level4ID",
    "assignee1ID",
    "assignee2ID",
    "assignee3ID",
    "estHours",
    "estPrevHours",
    "actHours",
    "isExceeded",
    "info",
    "dueDate",
    "comments",
    "expanded",
)

_JSON_COLUMNS = ("estPrevHours", "info")


class SQLiteTaskRepository:
    """
    Task CRUD over the single leveled `tasks` table (levels 1-4).
    JSON columns (info, estPrevHours) are encoded/decoded here; callers work
    with plain Python values.
    """

    def __init__(self, db_or_conn: DbOrConn):
        self._db_or_conn = db_or_conn

    # -------------------------
    # Row mapping
    # -------------------------
    @staticmethod
    def _row_to_task_dict(row: sqlite3.Row) -> Dict[str, Any]:
        rec = dict(row)
        for col in _JSON_COLUMNS:
            raw = rec.get(col)
            if isinstance(raw, str):
                try:
                    rec[col] = json.loads(raw)
                except json.JSONDecodeError:
                    # Legacy rows written by hand; surface the raw text.
                    pass
        if "expanded" in rec:
            rec["expanded"] = bool(rec["expanded"])
        return rec

    @staticmethod
    def _to_db(col: str, value: Any) -> Any:
        if col in _JSON_COLUMNS:
            return json.dumps(value)
        if col == "expanded":
            return 1 if value else 0
        return value

    # -------------------------
    # CRUD
    # -------------------------
    def create_task(self, fields: Dict[str, Any], *, con: Optional[sqlite3.Connection] = None) -> int:
        values = {k: self._to_db(k, fields[k]) for k in TASK_COLUMNS if k in fields}
        now = utc_now_iso()
        values["createdAt"] = now
        values["modifiedAt"] = now
        cols = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        with connection_scope(self._db_or_conn, con) as c:
            cur = c.execute(f"INSERT INTO tasks({cols}) VALUES ({placeholders})", tuple(values.values()))
            return int(cur.lastrowid)

    def get_task(self, task_id: int, *, con: Optional[sqlite3.Connection] = None) -> Optional[Dict[str, Any]]:
        with connection_scope(self._db_or_conn, con) as c:
            row = c.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task_dict(row) if row else None

    def update_task(self, task_id: int, fields: Dict[str, Any], *, con: Optional[sqlite3.Connection] = None) -> bool:
        sets, params = [], []
        for k in TASK_COLUMNS:
            if k in fields:
                sets.append(f"{k} = ?")
                params.append(self._to_db(k, fields[k]))
        sets.append("modifiedAt = ?")
        params.append(utc_now_iso())
        params.append(task_id)
        with connection_scope(self._db_or_conn, con) as c:
            cur = c.execute(f"UPDATE tasks SET {', '.join(sets)} WHERE id = ?", params)
            return cur.rowcount > 0

    def set_hierarchy(self, task_id: int, pointers: Dict[str, int], *, con: Optional[sqlite3.Connection] = None) -> None:
        """Write parentID/levelNID without touching modifiedAt (creation back-fill)."""
        cols = [k for k in ("parentID", "level1ID", "level2ID", "level3ID", "level4ID") if k in pointers]
        if not cols:
            return
        sql = f"UPDATE tasks SET {', '.join(f'{k} = ?' for k in cols)} WHERE id = ?"
        with connection_scope(self._db_or_conn, con) as c:
            c.execute(sql, (*(pointers[k] for k in cols), task_id))

    def delete_task(self, task_id: int, *, con: Optional[sqlite3.Connection] = None) -> bool:
        # No cascade: descendants stay in storage as orphans.
        with connection_scope(self._db_or_conn, con) as c:
            cur = c.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            return cur.rowcount > 0

    # -------------------------
    # Listings
    # -------------------------
    def list_tasks(self, *, con: Optional[sqlite3.Connection] = None) -> List[Dict[str, Any]]:
        with connection_scope(self._db_or_conn, con) as c:
            rows = c.execute("SELECT * FROM tasks ORDER BY createdAt DESC, id DESC").fetchall()
        return [self._row_to_task_dict(r) for r in rows]

    def list_project_tasks(self, project_id: int, *, con: Optional[sqlite3.Connection] = None) -> List[Dict[str, Any]]:
        """Flat task list for one project in creation order (id ascending)."""
        with connection_scope(self._db_or_conn, con) as c:
            rows = c.execute(
                "SELECT * FROM tasks WHERE projectID = ? ORDER BY id", (project_id,)
            ).fetchall()
        return [self._row_to_task_dict(r) for r in rows]
