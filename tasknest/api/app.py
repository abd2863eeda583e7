# Rev 0.3.0
"""FastAPI application factory.

Storage is injected: `create_app(database)` wires repositories and services
onto `app.state`; route handlers reach them through the dependencies in
`tasknest.api.deps`.
"""
from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import Any, Dict, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tasknest.repositories.db import Database
from tasknest.repositories.sqlite_project_repository import SQLiteProjectRepository
from tasknest.repositories.sqlite_task_repository import SQLiteTaskRepository
from tasknest.services.duplication_service import DuplicationService
from tasknest.services.errors import TaskNestError
from tasknest.services.project_service import ProjectService
from tasknest.services.task_service import TaskService

from . import routes_projects, routes_tasks

logger = logging.getLogger(__name__)


@dataclass
class Services:
    projects: ProjectService
    tasks: TaskService
    duplication: DuplicationService


def build_services(database: Database) -> Services:
    projects_repo = SQLiteProjectRepository(database)
    tasks_repo = SQLiteTaskRepository(database)
    return Services(
        projects=ProjectService(projects_repo),
        tasks=TaskService(database, tasks_repo, projects_repo),
        duplication=DuplicationService(database, projects_repo, tasks_repo),
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def validation_message(errors: Sequence[Dict[str, Any]]) -> str:
    """One client-facing sentence for a list of pydantic errors, naming the field."""
    missing = [_field_of(e) for e in errors if e.get("type") == "missing" and _field_of(e)]
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    if not errors:
        return "Malformed request"
    first = errors[0]
    kind = first.get("type")
    if kind == "missing":
        return "Malformed request: missing body"
    if kind == "json_invalid":
        return "Malformed request: invalid JSON"
    field = _field_of(first)
    cause = (first.get("ctx") or {}).get("error")
    message = str(cause) if cause is not None else first.get("msg", "invalid value")
    if not field:
        return message if cause is not None else f"Malformed request: {message}"
    if field in message:
        return message
    return f"Invalid value for {field}: {message}"


def _field_of(error: Dict[str, Any]) -> str:
    loc = list(error.get("loc", ()))
    if loc and loc[0] in ("body", "path", "query"):
        loc = loc[1:]
    return str(loc[0]) if loc else ""


def create_app(database: Database, *, cors_origins: list[str] | None = None) -> FastAPI:
    app = FastAPI(
        title="tasknest API",
        description="Projects and four-level task hierarchies",
        version="0.3.0",
    )
    app.state.database = database
    app.state.services = build_services(database)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method, request.url.path, response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @app.exception_handler(TaskNestError)
    async def handle_domain_error(request: Request, exc: TaskNestError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_bad_request(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.info("%s %s malformed request: %s", request.method, request.url.path, errors)
        return _error(400, validation_message(errors))

    @app.exception_handler(sqlite3.Error)
    async def handle_storage_error(request: Request, exc: sqlite3.Error):
        logger.exception("%s %s storage error", request.method, request.url.path, exc_info=exc)
        return _error(500, "Database error")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Same routes at the root and under /api.
    for prefix in ("", "/api"):
        app.include_router(routes_projects.router, prefix=prefix)
        app.include_router(routes_tasks.router, prefix=prefix)

    return app
