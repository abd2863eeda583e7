# Rev 0.3.0
from __future__ import annotations

import logging
from typing import Any, Dict, List

from tasknest.models.schemas import ProjectCreate, ProjectPatch
from tasknest.repositories.sqlite_project_repository import SQLiteProjectRepository

from .errors import NotFoundError, ValidationError

log = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, projects_repo: SQLiteProjectRepository):
        self._repo = projects_repo

    def list_projects(self) -> List[Dict[str, Any]]:
        return self._repo.list_projects()

    def get_project(self, project_id: int) -> Dict[str, Any]:
        project = self._repo.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    def create_project(self, data: ProjectCreate) -> Dict[str, Any]:
        fields = data.model_dump()
        project_id = self._repo.create_project(fields)
        log.info("Created project %s (%r)", project_id, fields["name"])
        return self._repo.get_project(project_id)

    def update_project(self, project_id: int, patch: ProjectPatch) -> Dict[str, Any]:
        fields = patch.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No valid fields to update")
        if not self._repo.update_project(project_id, fields):
            raise NotFoundError("Project not found")
        return self._repo.get_project(project_id)

    def delete_project(self, project_id: int) -> None:
        # Tasks of the project are not removed.
        if not self._repo.delete_project(project_id):
            raise NotFoundError("Project not found")
        log.info("Deleted project %s", project_id)
