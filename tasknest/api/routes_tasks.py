from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from tasknest.models.schemas import TaskCreate, TaskPatch
from tasknest.services.task_service import TaskService

from .deps import get_task_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("")
def list_tasks(tasks: TaskService = Depends(get_task_service)) -> List[Dict[str, Any]]:
    return tasks.list_tasks()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    tasks: TaskService = Depends(get_task_service),
) -> Dict[str, Any]:
    logger.debug("POST /tasks body: %s", payload.model_dump())
    return tasks.create_task(payload)


@router.get("/project/{project_id}")
def list_project_tasks(project_id: int, tasks: TaskService = Depends(get_task_service)) -> List[Dict[str, Any]]:
    return tasks.list_project_tasks(project_id)


@router.get("/{task_id}")
def get_task(task_id: int, tasks: TaskService = Depends(get_task_service)) -> Dict[str, Any]:
    return tasks.get_task(task_id)


@router.put("/{task_id}")
def update_task(
    task_id: int,
    payload: TaskPatch,
    tasks: TaskService = Depends(get_task_service),
) -> Dict[str, Any]:
    return tasks.update_task(task_id, payload)


@router.delete("/{task_id}")
def delete_task(task_id: int, tasks: TaskService = Depends(get_task_service)) -> Dict[str, bool]:
    tasks.delete_task(task_id)
    return {"success": True}
