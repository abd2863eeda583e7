# Rev 0.2.0

"""Project duplication (Rev 0.2.0)
- Names the copy "<base> (n)" with the lowest free positive n
- Copies every task of the source project, parents before children, and
  re-points parentID/level{N}ID at the newly assigned ids
- Runs in a single transaction: either the whole copy exists or nothing does
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Set

from tasknest.models.types import TASK, parent_level_key
from tasknest.repositories.db import Database
from tasknest.repositories.sqlite_project_repository import SQLiteProjectRepository
from tasknest.repositories.sqlite_task_repository import TASK_COLUMNS, SQLiteTaskRepository

from .errors import NotFoundError
from .task_service import hierarchy_pointers

log = logging.getLogger(__name__)

_COPY_SUFFIX = re.compile(r"\s*\((\d+)\)$")

# info keys describing a finished task; dropped on copy.
COMPLETION_KEYS = ("completedAt", "completedBy")


def base_name(name: str) -> str:
    return _COPY_SUFFIX.sub("", name).strip()


def used_copy_numbers(base: str, existing_names: Iterable[str]) -> Set[int]:
    """Suffix numbers already taken for `base` ("base" itself counts as 0)."""
    pattern = re.compile(rf"^{re.escape(base)}(?:\s*\((\d+)\))?$")
    used: Set[int] = set()
    for name in existing_names:
        m = pattern.match(name)
        if m:
            used.add(int(m.group(1)) if m.group(1) else 0)
    return used


def next_copy_name(source_name: str, existing_names: Iterable[str]) -> str:
    names = list(existing_names)
    base = base_name(source_name)
    used = used_copy_numbers(base, names)
    n = 1
    while n in used:
        n += 1
    candidate = f"{base} ({n})"
    taken = set(names)
    while candidate in taken:
        n += 1
        candidate = f"{base} ({n})"
    return candidate


def reset_for_copy(task: Dict[str, Any], new_project_id: int) -> Dict[str, Any]:
    """Column values of `task` for the copy: new project, open status, no completion metadata."""
    fields = {k: task[k] for k in TASK_COLUMNS if k in task}
    fields["projectID"] = new_project_id
    if fields.get("status") == "complete":
        fields["status"] = "todo"
    info = task.get("info")
    if isinstance(info, dict):
        fields["info"] = {k: v for k, v in info.items() if k not in COMPLETION_KEYS}
    return fields


class DuplicationService:
    def __init__(self, db: Database, projects_repo: SQLiteProjectRepository, tasks_repo: SQLiteTaskRepository):
        self._db = db
        self._projects = projects_repo
        self._tasks = tasks_repo

    def duplicate_project(self, project_id: int) -> Dict[str, Any]:
        with self._db.transaction() as con:
            source = self._projects.get_project(project_id, con=con)
            if source is None:
                raise NotFoundError("Project not found")

            name = next_copy_name(source["name"], self._projects.list_project_names(con=con))
            new_fields = {k: v for k, v in source.items() if k not in ("id", "createdAt", "modifiedAt")}
            new_fields["name"] = name
            new_project_id = self._projects.create_project(new_fields, con=con)

            tasks = self._tasks.list_project_tasks(project_id, con=con)
            copied = self._copy_tasks(tasks, new_project_id, con)
            created = self._projects.get_project(new_project_id, con=con)

        log.info("Duplicated project %s as %s (%r, %d tasks)", project_id, new_project_id, name, copied)
        return created

    def _copy_tasks(self, tasks: List[Dict[str, Any]], new_project_id: int, con) -> int:
        # old id -> copied row (with its new id and pointers)
        copies: Dict[int, Dict[str, Any]] = {}
        for task in sorted(tasks, key=lambda t: (int(t["taskLevel"]), int(t["id"]))):
            level = int(task["taskLevel"])
            parent = self._copied_parent(task, level, copies)
            if level > TASK and parent is None:
                log.warning(
                    "Task %s (level %s) has no parent in project %s; copying it unattached",
                    task["id"], level, task["projectID"],
                )
            new_id = self._tasks.create_task(reset_for_copy(task, new_project_id), con=con)
            pointers = hierarchy_pointers(level, new_id, parent, new_project_id)
            self._tasks.set_hierarchy(new_id, pointers, con=con)
            copies[int(task["id"])] = {"id": new_id, **pointers}
        return len(copies)

    @staticmethod
    def _copied_parent(task: Dict[str, Any], level: int, copies: Dict[int, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if level == TASK:
            return None
        for key in ("parentID", parent_level_key(level)):
            old_parent_id = task.get(key)
            if old_parent_id and int(old_parent_id) in copies:
                return copies[int(old_parent_id)]
        return None
