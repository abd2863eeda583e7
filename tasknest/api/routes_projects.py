from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from tasknest.models.schemas import ProjectCreate, ProjectPatch
from tasknest.services.duplication_service import DuplicationService
from tasknest.services.project_service import ProjectService
from tasknest.services.task_service import TaskService

from .deps import get_duplication_service, get_project_service, get_task_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("")
def list_projects(projects: ProjectService = Depends(get_project_service)) -> List[Dict[str, Any]]:
    return projects.list_projects()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreate,
    projects: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    logger.debug("POST /projects body: %s", payload.model_dump())
    return projects.create_project(payload)


@router.get("/{project_id}")
def get_project(project_id: int, projects: ProjectService = Depends(get_project_service)) -> Dict[str, Any]:
    return projects.get_project(project_id)


@router.patch("/{project_id}")
def update_project(
    project_id: int,
    payload: ProjectPatch,
    projects: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    return projects.update_project(project_id, payload)


@router.delete("/{project_id}")
def delete_project(project_id: int, projects: ProjectService = Depends(get_project_service)) -> Dict[str, bool]:
    projects.delete_project(project_id)
    return {"success": True}


@router.post("/{project_id}/duplicate", status_code=status.HTTP_201_CREATED)
def duplicate_project(
    project_id: int,
    duplication: DuplicationService = Depends(get_duplication_service),
) -> Dict[str, Any]:
    return duplication.duplicate_project(project_id)


@router.get("/{project_id}/tasks/tree")
def project_task_tree(project_id: int, tasks: TaskService = Depends(get_task_service)) -> List[Dict[str, Any]]:
    return tasks.project_tree(project_id)
