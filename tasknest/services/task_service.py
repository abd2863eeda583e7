# Rev 0.3.0

"""Task rules service (Rev 0.3.0)
Create/update/delete tasks on top of SQLiteTaskRepository:
- bodies arrive parsed (models.schemas); rules here need storage or the level
- back-fills parentID/level{N}ID from the parent on create
- placement (level, parent, project) is fixed after create
- keeps the previous estimate when estHours changes
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from tasknest.models.estimates import EstimateHistory, estimate_history_for
from tasknest.models.schemas import TaskCreate, TaskPatch
from tasknest.models.types import LEVEL_ID_KEYS, TASK, TASK_LEVELS
from tasknest.repositories.db import Database
from tasknest.repositories.sqlite_project_repository import SQLiteProjectRepository
from tasknest.repositories.sqlite_task_repository import SQLiteTaskRepository

from .errors import NotFoundError, ValidationError
from .task_tree import build_task_tree

log = logging.getLogger(__name__)

# Fields that decide where a task sits in the forest.
PLACEMENT_FIELDS = ("taskLevel", "parentID", "projectID")


def hierarchy_pointers(task_level: int, task_id: int, parent: Optional[Mapping[str, Any]], project_id: int) -> Dict[str, int]:
    """
    parentID + level1ID..level4ID for a record at `task_level` with id `task_id`.

    Levels above the record's own are inherited from `parent`; its own level
    points at itself; deeper levels are 0. Level-1 records hang off the project.
    """
    pointers = {key: 0 for key in LEVEL_ID_KEYS.values()}
    if task_level == TASK or parent is None:
        pointers["parentID"] = project_id if task_level == TASK else 0
    else:
        pointers["parentID"] = int(parent["id"])
        for level in TASK_LEVELS[: task_level - 1]:
            pointers[LEVEL_ID_KEYS[level]] = int(parent.get(LEVEL_ID_KEYS[level]) or 0)
    pointers[LEVEL_ID_KEYS[task_level]] = task_id
    return pointers


def estimate_history(task_level: int, raw: Any) -> EstimateHistory:
    try:
        return estimate_history_for(task_level, raw)
    except ValueError as e:
        raise ValidationError(f"Invalid value for estPrevHours: {e}", "estPrevHours") from None


class TaskService:
    def __init__(self, db: Database, tasks_repo: SQLiteTaskRepository, projects_repo: SQLiteProjectRepository):
        self._db = db
        self._tasks = tasks_repo
        self._projects = projects_repo

    # ---- queries
    def list_tasks(self) -> List[Dict[str, Any]]:
        return self._tasks.list_tasks()

    def list_project_tasks(self, project_id: int) -> List[Dict[str, Any]]:
        return self._tasks.list_project_tasks(project_id)

    def project_tree(self, project_id: int) -> List[Dict[str, Any]]:
        if self._projects.get_project(project_id) is None:
            raise NotFoundError("Project not found")
        return build_task_tree(self._tasks.list_project_tasks(project_id))

    def get_task(self, task_id: int) -> Dict[str, Any]:
        task = self._tasks.get_task(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    # ---- commands
    def create_task(self, data: TaskCreate) -> Dict[str, Any]:
        fields = data.model_dump()
        level = fields["taskLevel"]
        project_id = fields["projectID"]
        parent_id = fields.pop("parentID")
        fields["estPrevHours"] = estimate_history(level, fields["estPrevHours"]).to_wire()

        with self._db.transaction() as con:
            if self._projects.get_project(project_id, con=con) is None:
                raise NotFoundError("Project not found")

            parent = None
            if level > TASK:
                parent = self._tasks.get_task(parent_id, con=con)
                if parent is None or parent["projectID"] != project_id:
                    raise ValidationError("Parent task not found", "parentID")
                if int(parent["taskLevel"]) != level - 1:
                    raise ValidationError(
                        f"Parent task must be level {level - 1} for a level {level} task", "parentID"
                    )

            task_id = self._tasks.create_task(fields, con=con)
            self._tasks.set_hierarchy(task_id, hierarchy_pointers(level, task_id, parent, project_id), con=con)
            created = self._tasks.get_task(task_id, con=con)

        log.info("Created task %s (level %s) in project %s", task_id, level, project_id)
        return created

    def update_task(self, task_id: int, patch: TaskPatch) -> Dict[str, Any]:
        fields = patch.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No valid fields to update")

        with self._db.transaction() as con:
            current = self._tasks.get_task(task_id, con=con)
            if current is None:
                raise NotFoundError("Task not found")
            self._keep_placement(current, fields)
            level = int(current["taskLevel"])
            if "estPrevHours" in fields:
                fields["estPrevHours"] = estimate_history(level, fields["estPrevHours"]).to_wire()
            else:
                self._track_estimate(current, fields)
            if not fields:
                return current
            self._tasks.update_task(task_id, fields, con=con)
            updated = self._tasks.get_task(task_id, con=con)
        log.debug("Updated task %s: %s", task_id, sorted(fields))
        return updated

    def delete_task(self, task_id: int) -> None:
        if not self._tasks.delete_task(task_id):
            raise NotFoundError("Task not found")
        log.info("Deleted task %s (descendants left in place)", task_id)

    # ---- internals
    @staticmethod
    def _keep_placement(current: Dict[str, Any], fields: Dict[str, Any]) -> None:
        """Drop placement fields that repeat the stored value; refuse ones that would move the task."""
        for key in PLACEMENT_FIELDS:
            if key not in fields:
                continue
            if fields[key] != current[key]:
                raise ValidationError(f"{key} cannot be changed once a task is created", key)
            del fields[key]

    @staticmethod
    def _track_estimate(current: Dict[str, Any], fields: Dict[str, Any]) -> None:
        """Record the outgoing estimate in estPrevHours when estHours changes."""
        old_est = float(current.get("estHours") or 0)
        if "estHours" not in fields or float(fields["estHours"]) == old_est:
            return
        level = int(current["taskLevel"])
        try:
            history = estimate_history_for(level, current.get("estPrevHours"))
        except ValueError:
            log.warning("Task %s has unreadable estPrevHours %r; starting a new history",
                        current["id"], current.get("estPrevHours"))
            history = estimate_history_for(level)
        fields["estPrevHours"] = history.record(old_est).to_wire()
