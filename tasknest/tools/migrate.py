# File: tasknest/tools/migrate.py
# Usage examples:
#   tasknest-migrate up
#   tasknest-migrate status
#   tasknest-migrate up --db /path/to/tasknest.db
#
# Notes:
# - DB path defaults to env TASKNEST_DB or the configured database.path
# - Applies tasknest/data/migrations/*.sql in lexicographic order
# - Records applied migrations in schema_migrations

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from tasknest.repositories.db import Database
from tasknest.utils.config import load_settings
from tasknest.utils.paths import MIGRATIONS_DIR


def cmd_up(db_path: Path, migrations_dir: Path) -> int:
    db = Database(db_path, pool_size=1)
    try:
        applied = db.run_migrations(migrations_dir)
    finally:
        db.close()
    if applied:
        for name in applied:
            print(f"✓ applied {name}")
    else:
        print("Nothing to apply.")
    return 0


def cmd_status(db_path: Path, migrations_dir: Path) -> int:
    db = Database(db_path, pool_size=1)
    try:
        applied = sorted(db.applied())
        pending = db.pending(migrations_dir)
    finally:
        db.close()
    print(f"DB: {db_path}")
    print("Applied:")
    for name in applied:
        print(f"  {name}")
    print("Pending:")
    for name in pending:
        print(f"  {name}")
    return 1 if pending else 0


def parse_args(argv: list[str]) -> argparse.Namespace:
    default_db = Path(load_settings()["database"]["path"])
    p = argparse.ArgumentParser(prog="tasknest-migrate", description="SQLite migration runner for tasknest")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(sp: argparse.ArgumentParser):
        sp.add_argument("--db", type=Path, default=default_db, help=f"Path to SQLite DB (default: {default_db})")
        sp.add_argument("--migrations-dir", type=Path, default=MIGRATIONS_DIR, help=f"Migrations directory (default: {MIGRATIONS_DIR})")

    add_common(sub.add_parser("up", help="Run pending migrations"))
    add_common(sub.add_parser("status", help="Show applied and pending migrations"))
    return p.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    ns = parse_args(sys.argv[1:] if argv is None else argv)
    if ns.cmd == "up":
        return cmd_up(ns.db, ns.migrations_dir)
    if ns.cmd == "status":
        return cmd_status(ns.db, ns.migrations_dir)
    raise SystemExit(1)


if __name__ == "__main__":
    raise SystemExit(main())
