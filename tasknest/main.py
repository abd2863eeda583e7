# Rev 0.2.0

# tasknest/main.py  (Rev 0.2.0)
# Usage:
#   tasknest-serve
#   tasknest-serve --port 5000 --db /path/to/tasknest.db
from __future__ import annotations

import argparse
import sys
from typing import Optional

import uvicorn

from tasknest.api.app import create_app
from tasknest.app_context import AppContext
from tasknest.utils.config import load_settings
from tasknest.utils.logging_setup import setup_logging


def parse_args(argv: list[str], settings: dict) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="tasknest-serve", description="Run the tasknest REST API")
    p.add_argument("--host", default=settings["server"]["host"], help="Bind address (default: %(default)s)")
    p.add_argument("--port", type=int, default=settings["server"]["port"], help="Port (default: %(default)s)")
    p.add_argument("--db", default=settings["database"]["path"], help="SQLite path (default: %(default)s)")
    return p.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    settings = load_settings()
    ns = parse_args(sys.argv[1:] if argv is None else argv, settings)

    logfile = setup_logging("tasknest")
    print(f"[logging] Writing to: {logfile}")

    # --- DI wiring ---
    ctx = AppContext.create(settings, db_path=ns.db)
    try:
        uvicorn.run(create_app(ctx.db), host=ns.host, port=ns.port, log_config=None)
    finally:
        ctx.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
