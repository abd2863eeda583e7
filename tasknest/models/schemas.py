# Rev 0.3.0
"""Request bodies for the REST API.

Create models carry the column defaults; patch models leave every field
unset so `model_dump(exclude_unset=True)` yields only what the client sent.
Unknown keys, server-managed fields and the level{N}ID ancestor pointers are
not fields here and are dropped on parse.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    FiniteFloat,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .types import DEFAULT_STATUS, STATUSES, TASK, Status, normalize_status


def _reject_bool(value: Any) -> Any:
    # JSON true/false would otherwise pass as 1/0
    if isinstance(value, bool):
        raise ValueError("expected a number, not a boolean")
    return value


RecordId = Annotated[int, BeforeValidator(_reject_bool)]
Hours = Annotated[FiniteFloat, BeforeValidator(_reject_bool)]
Level = Annotated[int, BeforeValidator(_reject_bool), Field(ge=1, le=4)]
EstimateWire = Union[List[Hours], Hours]


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("name", "taskType", "priority", check_fields=False)
    @classmethod
    def not_blank(cls, value: str, info: ValidationInfo) -> str:
        if not value.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return value

    @field_validator("startDate", "endDate", "dueDate", mode="before", check_fields=False)
    @classmethod
    def iso_date_text(cls, value: Any, info: ValidationInfo) -> Optional[str]:
        """ISO-8601 date/datetime text, kept as sent; empty → None."""
        if value is None or value == "":
            return None
        if isinstance(value, str):
            try:
                datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
                return value.strip()
            except ValueError:
                pass
        raise ValueError(f"Invalid value for {info.field_name}: expected an ISO-8601 date")


# ---------- projects ----------

class ProjectCreate(_Body):
    userID: RecordId
    name: str
    wsID: RecordId
    description: str = ""
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    estHours: Hours = 0.0
    actHours: Hours = 0.0


class ProjectPatch(_Body):
    userID: RecordId = None
    name: str = None
    wsID: RecordId = None
    description: str = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    estHours: Hours = None
    actHours: Hours = None


# ---------- tasks ----------

class _TaskFields(_Body):
    @field_validator("status", mode="before", check_fields=False)
    @classmethod
    def canonical_status(cls, value: Any) -> str:
        status = normalize_status(value)
        if status is None:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(STATUSES)}")
        return status

    @field_validator("info", mode="before", check_fields=False)
    @classmethod
    def decode_info(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            try:
                return json.loads(value) if value.strip() else {}
            except json.JSONDecodeError:
                raise ValueError("Invalid JSON format for info") from None
        return value

    @field_validator("estPrevHours", mode="before", check_fields=False)
    @classmethod
    def decode_estimates(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value) if value.strip() else None
            except json.JSONDecodeError:
                raise ValueError("Invalid JSON format for estPrevHours") from None
        return value


class TaskCreate(_TaskFields):
    wsID: RecordId
    userID: RecordId
    projectID: RecordId
    name: str
    taskLevel: Level = TASK
    parentID: Optional[RecordId] = None
    description: str = ""
    status: Status = DEFAULT_STATUS
    taskType: str = "task"
    priority: str = "low"
    assignee1ID: RecordId = 0
    assignee2ID: RecordId = 0
    assignee3ID: RecordId = 0
    estHours: Hours = 0.0
    estPrevHours: Optional[EstimateWire] = None
    actHours: Hours = 0.0
    isExceeded: RecordId = 0
    info: Dict[str, Any] = Field(default_factory=dict)
    dueDate: Optional[str] = None
    comments: str = ""
    expanded: bool = True

    @model_validator(mode="after")
    def parent_above_level_one(self) -> "TaskCreate":
        if self.taskLevel > TASK and self.parentID is None:
            raise ValueError("Missing required fields: parentID")
        return self


class TaskPatch(_TaskFields):
    # Placement fields are accepted only when unchanged; see TaskService.update_task.
    wsID: RecordId = None
    userID: RecordId = None
    projectID: RecordId = None
    taskLevel: Level = None
    parentID: RecordId = None
    name: str = None
    description: str = None
    status: Status = None
    taskType: str = None
    priority: str = None
    assignee1ID: RecordId = None
    assignee2ID: RecordId = None
    assignee3ID: RecordId = None
    estHours: Hours = None
    estPrevHours: Optional[EstimateWire] = None
    actHours: Hours = None
    isExceeded: RecordId = None
    info: Dict[str, Any] = None
    dueDate: Optional[str] = None
    comments: str = None
    expanded: bool = None
