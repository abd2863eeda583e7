# Rev 0.2.0

"""SQLite connection pool & migration runner (Rev 0.2.0)
- WAL mode, foreign_keys=ON, busy_timeout
- Bounded pool of reusable connections (default 10)
- Applies SQL files in tasknest/data/migrations in lexical order
- Tracks applied files in schema_migrations(filename TEXT PRIMARY KEY, applied_at UTC)
"""
from __future__ import annotations
import logging
import queue
import sqlite3
import threading
from contextlib import contextmanager, nullcontext
from pathlib import Path
from datetime import datetime, timezone
from typing import ContextManager, Iterator, Optional, Union


from tasknest.utils.paths import DB_PATH, MIGRATIONS_DIR


log = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 10


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class Database:
    def __init__(self, path: Path | str = DB_PATH, *, pool_size: int = DEFAULT_POOL_SIZE, timeout: float = 30.0) -> None:
        if pool_size < 1:
            raise ValueError("pool_size must be >= 1")
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.pool_size = pool_size
        self._timeout = timeout
        self._idle: queue.LifoQueue[sqlite3.Connection] = queue.LifoQueue(maxsize=pool_size)
        self._opened = 0
        self._lock = threading.Lock()
        self._closed = False
        # Dedicated connection for migrations and ad-hoc inspection; not pooled.
        self.conn = self._connect()
        self.conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations (filename TEXT PRIMARY KEY, applied_at TEXT NOT NULL)"
        )
        log.info("SQLite open %s (pool_size=%d)", self.path, pool_size)


    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.path, isolation_level=None, check_same_thread=False, timeout=self._timeout)
        con.row_factory = sqlite3.Row
        con.execute("PRAGMA journal_mode=WAL;")
        con.execute("PRAGMA foreign_keys=ON;")
        con.execute("PRAGMA busy_timeout=5000;")
        return con


    # ---------- pool ----------

    def _acquire(self) -> sqlite3.Connection:
        if self._closed:
            raise sqlite3.ProgrammingError("Database is closed")
        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass
        with self._lock:
            if self._opened < self.pool_size:
                self._opened += 1
                return self._connect()
        # Pool exhausted: wait for a connection to come back.
        try:
            return self._idle.get(timeout=self._timeout)
        except queue.Empty:
            raise sqlite3.OperationalError(
                f"connection pool exhausted ({self.pool_size} in use for {self._timeout}s)"
            ) from None


    def _release(self, con: sqlite3.Connection) -> None:
        if con.in_transaction:
            con.rollback()
        if self._closed:
            con.close()
            return
        self._idle.put_nowait(con)


    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._acquire()
        try:
            yield con
        finally:
            self._release(con)


    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """One pooled connection inside BEGIN IMMEDIATE … COMMIT; rolls back on any error."""
        with self.connection() as con:
            con.execute("BEGIN IMMEDIATE;")
            try:
                yield con
            except BaseException:
                con.execute("ROLLBACK;")
                raise
            else:
                con.execute("COMMIT;")


    def close(self) -> None:
        self._closed = True
        while True:
            try:
                self._idle.get_nowait().close()
            except queue.Empty:
                break
        self.conn.close()


    # ---------- migrations ----------

    def applied(self) -> set[str]:
        rows = self.conn.execute("SELECT filename FROM schema_migrations").fetchall()
        return {r[0] for r in rows}


    def pending(self, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
        applied = self.applied()
        return [p.name for p in sorted(migrations_dir.glob("*.sql")) if p.name not in applied]


    def apply_sql(self, sql: str) -> None:
        self.conn.executescript(sql)


    def run_migrations(self, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
        to_apply = [migrations_dir / name for name in self.pending(migrations_dir)]
        for p in to_apply:
            sql = p.read_text(encoding="utf-8")
            self.apply_sql(sql)
            self.conn.execute(
                "INSERT INTO schema_migrations(filename, applied_at) VALUES(?, ?)",
                (p.name, utc_now_iso()),
            )
            log.info("Applied migration %s", p.name)
        return [p.name for p in to_apply]


DbOrConn = Union[Database, sqlite3.Connection]


def connection_scope(db_or_conn: DbOrConn, con: Optional[sqlite3.Connection] = None) -> ContextManager[sqlite3.Connection]:
    """
    Resolve the connection a repository call should run on.
    An explicit `con` (e.g. from Database.transaction()) wins; a raw
    sqlite3.Connection is used as-is; a Database lends a pooled connection.
    """
    if con is not None:
        return nullcontext(con)
    if isinstance(db_or_conn, sqlite3.Connection):
        return nullcontext(db_or_conn)
    if hasattr(db_or_conn, "connection"):
        return db_or_conn.connection()
    raise RuntimeError(
        "could not obtain sqlite3.Connection "
        "(expected a Database with .connection() or a raw Connection)."
    )
