# Rev 0.2.0
# tasknest – SQLiteProjectRepository (Rev 0.2.0, schema 0001)
from __future__ import annotations
import sqlite3
from typing import List, Dict, Any, Optional

from .db import DbOrConn, connection_scope, utc_now_iso


# Writable columns; id/createdAt/modifiedAt are server-managed.
PROJECT_COLUMNS = (
    "userID",
    "wsID",
    "name",
    "description",
    "startDate",
    "endDate",
    "estHours",
    "actHours",
)


class SQLiteProjectRepository:
    """
    Project repository.
    Every method accepts an optional `con` so callers can run it inside
    Database.transaction().
    """

    def __init__(self, db_or_conn: DbOrConn):
        self._db = db_or_conn

    # ---------- public API ----------

    def list_projects(self, *, con: Optional[sqlite3.Connection] = None) -> List[Dict[str, Any]]:
        """
        Returns all projects, newest first.
        """
        sql = """
            SELECT *
            FROM projects
            ORDER BY createdAt DESC, id DESC;
        """
        return self._fetch_all(sql, con=con)

    def get_project(self, project_id: int, *, con: Optional[sqlite3.Connection] = None) -> Optional[Dict[str, Any]]:
        rows = self._fetch_all("SELECT * FROM projects WHERE id = ?;", (project_id,), con=con)
        return rows[0] if rows else None

    def list_project_names(self, *, con: Optional[sqlite3.Connection] = None) -> List[str]:
        with connection_scope(self._db, con) as c:
            return [r[0] for r in c.execute("SELECT name FROM projects ORDER BY id").fetchall()]

    # ---------- mutations ----------

    def create_project(self, fields: Dict[str, Any], *, con: Optional[sqlite3.Connection] = None) -> int:
        values = {k: fields[k] for k in PROJECT_COLUMNS if k in fields}
        now = utc_now_iso()
        values["createdAt"] = now
        values["modifiedAt"] = now
        cols = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        with connection_scope(self._db, con) as c:
            cur = c.execute(f"INSERT INTO projects({cols}) VALUES ({placeholders})", tuple(values.values()))
            return int(cur.lastrowid)

    def update_project(self, project_id: int, fields: Dict[str, Any], *, con: Optional[sqlite3.Connection] = None) -> bool:
        sets, params = [], []
        for k in PROJECT_COLUMNS:
            if k in fields:
                sets.append(f"{k} = ?")
                params.append(fields[k])
        sets.append("modifiedAt = ?")
        params.append(utc_now_iso())
        params.append(project_id)
        with connection_scope(self._db, con) as c:
            cur = c.execute(f"UPDATE projects SET {', '.join(sets)} WHERE id = ?", params)
            return cur.rowcount > 0

    def delete_project(self, project_id: int, *, con: Optional[sqlite3.Connection] = None) -> bool:
        # Tasks are left in place; see the schema notes.
        with connection_scope(self._db, con) as c:
            cur = c.execute("DELETE FROM projects WHERE id = ?", (project_id,))
            return cur.rowcount > 0

    # ---------- internals ----------

    def _fetch_all(self, sql: str, params: tuple = (), *, con: Optional[sqlite3.Connection] = None) -> List[Dict[str, Any]]:
        with connection_scope(self._db, con) as c:
            cur = c.execute(sql, params)
            cols = [d[0] for d in cur.description]
            return [{cols[i]: row[i] for i in range(len(cols))} for row in cur.fetchall()]
