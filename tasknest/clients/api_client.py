from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

log = logging.getLogger(__name__)


class ApiError(Exception):
    """
    A failed API call. `status_code` is the HTTP status (400 validation,
    404 not found, 5xx server fault) or None when the server was unreachable.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_validation_error(self) -> bool:
        return self.status_code == 400

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_server_error(self) -> bool:
        return self.status_code is None or self.status_code >= 500


class TaskApiClient:
    """
    Thin JSON client for the tasknest REST API.

    `session` defaults to a requests.Session; anything with the same
    get/post/put/patch/delete call shape works (FastAPI's TestClient in tests).
    """

    def __init__(self, base_url: str, session: Any = None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    # ---------- projects ----------
    def list_projects(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/projects")

    def get_project(self, project_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/projects/{project_id}")

    def create_project(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/projects", json=payload)

    def update_project(self, project_id: int, **fields) -> Dict[str, Any]:
        return self._request("PATCH", f"/projects/{project_id}", json=fields)

    def delete_project(self, project_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/projects/{project_id}")

    def duplicate_project(self, project_id: int) -> Dict[str, Any]:
        return self._request("POST", f"/projects/{project_id}/duplicate")

    # ---------- tasks ----------
    def list_tasks(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/tasks")

    def list_project_tasks(self, project_id: int) -> List[Dict[str, Any]]:
        return self._request("GET", f"/tasks/project/{project_id}")

    def get_task(self, task_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/tasks/{task_id}")

    def create_task(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/tasks", json=payload)

    def update_task(self, task_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/tasks/{task_id}", json=updates)

    def delete_task(self, task_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/tasks/{task_id}")

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    # ---------- internals ----------
    def _request(self, method: str, path: str, *, json: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        kwargs: Dict[str, Any] = {"timeout": self.timeout}
        if json is not None:
            kwargs["json"] = json
        try:
            r = getattr(self.session, method.lower())(url, **kwargs)
        except requests.RequestException as e:
            log.error("%s %s failed: %s", method, url, e)
            raise ApiError(f"{method} {path} failed: {e}") from e

        if r.status_code >= 400:
            raise ApiError(self._error_message(r), r.status_code)
        try:
            return r.json()
        except ValueError:
            log.error("%s %s returned non-JSON body (HTTP %s)", method, url, r.status_code)
            raise ApiError(f"Invalid JSON in response to {method} {path}", r.status_code) from None

    @staticmethod
    def _error_message(r) -> str:
        try:
            body = r.json()
        except ValueError:
            return f"HTTP {r.status_code}: {r.text}"
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"HTTP {r.status_code}"
