# Rev 0.2.0: projects + nested task forest for the selected project
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

from PySide6.QtCore import QObject, Signal

from tasknest.clients.api_client import ApiError, TaskApiClient
from tasknest.models.types import (
    ACTION_ITEM,
    CHILD_KEYS,
    LEVEL_LABELS,
    SUBACTION_ITEM,
    SUBTASK,
    TASK,
)
from tasknest.services.task_tree import build_task_tree

log = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "Default Project"
PROJECT_SPAN_DAYS = 30


class TaskBoardViewModel(QObject):
    """
    Mirrors server state for a task board UI.

    Keeps the project list, the selected project and that project's task
    forest (built with build_task_tree). Every command talks to the REST API,
    then re-fetches what it changed. Failures are logged and reported through
    toastRequested("error", message); the command returns None/False.

    Emits:
      - projectsChanged(projects: list[dict])
      - selectedProjectChanged(project_id | None)
      - tasksReloaded(project_id, forest: list[dict])
      - timerChanged(timer: dict)
      - toastRequested(kind: "success" | "error", message: str)
    """

    projectsChanged = Signal(object)
    selectedProjectChanged = Signal(object)
    tasksReloaded = Signal(object, object)
    timerChanged = Signal(object)
    toastRequested = Signal(str, str)

    def __init__(
        self,
        api: TaskApiClient,
        *,
        users: Optional[List[Dict[str, str]]] = None,
        user_id: int = 1,
        ws_id: int = 1,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__()
        self._api = api
        self._users = list(users or [])
        self._user_id = user_id
        self._ws_id = ws_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._projects: List[Dict[str, Any]] = []
        self._selected_id: Optional[int] = None
        self._timer: Dict[str, Any] = self._idle_timer()
        self.last_error: Optional[str] = None

    # ---- state
    @property
    def projects(self) -> List[Dict[str, Any]]:
        return self._projects

    @property
    def selected_project_id(self) -> Optional[int]:
        return self._selected_id

    @property
    def timer(self) -> Dict[str, Any]:
        return dict(self._timer)

    def selected_project(self) -> Optional[Dict[str, Any]]:
        return self._project(self._selected_id)

    def get_user_by_id(self, user_id: Any) -> Optional[Dict[str, str]]:
        if user_id in (None, ""):
            return None
        key = str(user_id)
        return next((u for u in self._users if str(u.get("id")) == key), None)

    # ---- queries
    def load_projects(self) -> bool:
        """Initial load: fetch projects, create a default one if none exist, select the first."""
        try:
            fetched = self._api.list_projects()
        except ApiError as e:
            self._fail("Failed to fetch projects", e)
            return False

        self._projects = [{**p, "tasks": []} for p in fetched]
        self.projectsChanged.emit(self._projects)
        if not fetched:
            return self.add_project(DEFAULT_PROJECT_NAME) is not None
        self.select_project(fetched[0]["id"])
        return True

    def fetch_tasks(self, project_id: int) -> Optional[List[Dict[str, Any]]]:
        if project_id is None:
            return None
        try:
            flat = self._api.list_project_tasks(project_id)
        except ApiError as e:
            self._fail("Failed to load tasks", e)
            return None
        forest = build_task_tree(flat)
        project = self._project(project_id)
        if project is not None:
            project["tasks"] = forest
        self.tasksReloaded.emit(project_id, forest)
        return forest

    def find_item(self, project_id: int, item_id: int) -> Optional[Dict[str, Any]]:
        project = self._project(project_id)
        if project is None:
            return None
        for node in _walk(project.get("tasks") or []):
            if node.get("id") == item_id:
                return node
        return None

    # ---- project commands
    def select_project(self, project_id: Optional[int]) -> None:
        self._selected_id = project_id
        self.selectedProjectChanged.emit(project_id)
        if project_id is not None:
            self.fetch_tasks(project_id)

    def add_project(self, name: str) -> Optional[Dict[str, Any]]:
        now = self._clock()
        payload = {
            "userID": self._user_id,
            "name": name,
            "startDate": now.isoformat(),
            "endDate": (now + timedelta(days=PROJECT_SPAN_DAYS)).isoformat(),
            "wsID": self._ws_id,
        }
        try:
            created = self._api.create_project(payload)
        except ApiError as e:
            self._fail("Failed to create project", e)
            return None
        self._projects.append({**created, "tasks": []})
        self.projectsChanged.emit(self._projects)
        self.select_project(created["id"])
        self._ok("Project created successfully")
        return created

    def rename_project(self, project_id: int, name: str) -> bool:
        try:
            updated = self._api.update_project(project_id, name=name)
        except ApiError as e:
            self._fail("Failed to rename project", e)
            return False
        project = self._project(project_id)
        if project is not None:
            project.update(updated)
        self.projectsChanged.emit(self._projects)
        self._ok("Project renamed successfully")
        return True

    def delete_project(self, project_id: int) -> bool:
        try:
            self._api.delete_project(project_id)
        except ApiError as e:
            self._fail("Failed to delete project", e)
            return False
        self._projects = [p for p in self._projects if p["id"] != project_id]
        self.projectsChanged.emit(self._projects)
        if self._selected_id == project_id:
            self.select_project(self._projects[0]["id"] if self._projects else None)
        self._ok("Project deleted successfully")
        return True

    def duplicate_project(self, project_id: int) -> Optional[Dict[str, Any]]:
        try:
            created = self._api.duplicate_project(project_id)
            fetched = self._api.list_projects()
        except ApiError as e:
            self._fail("Failed to duplicate project", e)
            return None
        known = {p["id"]: p.get("tasks", []) for p in self._projects}
        self._projects = [{**p, "tasks": known.get(p["id"], [])} for p in fetched]
        self.projectsChanged.emit(self._projects)
        self.select_project(created["id"])
        self._ok("Project duplicated successfully")
        return created

    # ---- task commands
    def add_task(self, project_id: int, name: str, status: str = "todo", task_type: str = "task"):
        return self._add_item(project_id, TASK, project_id, name, status, task_type)

    def add_subtask(self, project_id: int, task_id: int, name: str, status: str = "todo", task_type: str = "task"):
        return self._add_item(project_id, SUBTASK, task_id, name, status, task_type)

    def add_action_item(self, project_id: int, subtask_id: int, name: str, status: str = "todo", task_type: str = "task"):
        return self._add_item(project_id, ACTION_ITEM, subtask_id, name, status, task_type)

    def add_subaction_item(self, project_id: int, action_item_id: int, name: str, status: str = "todo", task_type: str = "task"):
        return self._add_item(project_id, SUBACTION_ITEM, action_item_id, name, status, task_type)

    def update_item(self, item_id: int, updates: Dict[str, Any], *, project_id: Optional[int] = None, quiet: bool = False) -> Optional[Dict[str, Any]]:
        project_id = project_id if project_id is not None else self._selected_id
        try:
            updated = self._api.update_task(item_id, updates)
        except ApiError as e:
            self._fail("Failed to update item", e, quiet=quiet)
            return None
        if project_id is not None:
            self.fetch_tasks(project_id)
        if not quiet:
            self._ok(f"{LEVEL_LABELS.get(updated.get('taskLevel'), 'Item')} updated successfully")
        return updated

    def delete_item(self, project_id: int, item_id: int) -> bool:
        try:
            self._api.delete_task(item_id)
        except ApiError as e:
            self._fail("Failed to delete item", e)
            return False
        self.fetch_tasks(project_id)
        self._ok("Item deleted successfully")
        return True

    def toggle_expanded(self, project_id: int, item_id: int) -> bool:
        """Flip the fold state of a task, subtask or action item; subaction items have nothing to fold."""
        item = self.find_item(project_id, item_id)
        if item is None or item.get("taskLevel") not in CHILD_KEYS:
            return False
        return self.update_item(item_id, {"expanded": not item.get("expanded", False)},
                                project_id=project_id, quiet=True) is not None

    # ---- timer
    def start_timer(self, project_id: int, item_id: int) -> None:
        self._timer = {
            "projectId": project_id,
            "itemId": item_id,
            "startTime": self._clock(),
            "isActive": True,
            "isRunning": True,
        }
        self.timerChanged.emit(self.timer)

    def stop_timer(self) -> Optional[float]:
        """Stop the running timer and add the elapsed hours to the item's actHours."""
        timer, self._timer = self._timer, self._idle_timer()
        self.timerChanged.emit(self.timer)
        if not (timer["isRunning"] and timer["startTime"] and timer["itemId"] is not None):
            return None

        elapsed = (self._clock() - timer["startTime"]).total_seconds() / 3600.0
        item = self.find_item(timer["projectId"], timer["itemId"])
        if item is None:
            try:
                item = self._api.get_task(timer["itemId"])
            except ApiError as e:
                self._fail("Failed to record time", e)
                return None
        total = round(float(item.get("actHours") or 0) + elapsed, 2)
        if self.update_item(timer["itemId"], {"actHours": total}, project_id=timer["projectId"], quiet=True) is None:
            return None
        return total

    # ---- internals
    def _add_item(self, project_id: int, level: int, parent_id: int, name: str, status: str, task_type: str):
        if not name or not name.strip():
            return None
        payload: Dict[str, Any] = {
            "name": name,
            "wsID": self._ws_id,
            "userID": self._user_id,
            "projectID": project_id,
            "taskLevel": level,
            "status": status,
            "taskType": task_type,
            "parentID": parent_id,
            "description": "",
        }
        if level == SUBTASK:
            payload["estPrevHours"] = []
        label = LEVEL_LABELS[level]
        try:
            created = self._api.create_task(payload)
        except ApiError as e:
            self._fail(f"Failed to create {label.lower()}", e)
            return None
        self.fetch_tasks(project_id)
        self._ok(f"{label} created successfully")
        return created

    def _project(self, project_id: Optional[int]) -> Optional[Dict[str, Any]]:
        if project_id is None:
            return None
        return next((p for p in self._projects if p["id"] == project_id), None)

    @staticmethod
    def _idle_timer() -> Dict[str, Any]:
        return {"projectId": None, "itemId": None, "startTime": None, "isActive": False, "isRunning": False}

    def _ok(self, message: str) -> None:
        self.toastRequested.emit("success", message)

    def _fail(self, message: str, error: ApiError, *, quiet: bool = False) -> None:
        log.error("%s: %s (status=%s)", message, error.message, error.status_code)
        self.last_error = error.message
        if not quiet:
            self.toastRequested.emit("error", message)


def _walk(nodes: List[Dict[str, Any]]) -> Iterator[Dict[str, Any]]:
    for node in nodes:
        yield node
        for key in CHILD_KEYS.values():
            yield from _walk(node.get(key) or [])
