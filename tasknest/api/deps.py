from __future__ import annotations

from fastapi import Request

from tasknest.services.duplication_service import DuplicationService
from tasknest.services.project_service import ProjectService
from tasknest.services.task_service import TaskService


def get_project_service(request: Request) -> ProjectService:
    return request.app.state.services.projects


def get_task_service(request: Request) -> TaskService:
    return request.app.state.services.tasks


def get_duplication_service(request: Request) -> DuplicationService:
    return request.app.state.services.duplication
