# tasknest type definitions
# Rev 0.2.0

from __future__ import annotations
from typing import Dict, Literal, Optional

# Levels: task → subtask → action item → subaction item, all in one table.
TASK = 1
SUBTASK = 2
ACTION_ITEM = 3
SUBACTION_ITEM = 4
TASK_LEVELS = (TASK, SUBTASK, ACTION_ITEM, SUBACTION_ITEM)

LEVEL_LABELS: Dict[int, str] = {
    TASK: "Task",
    SUBTASK: "Subtask",
    ACTION_ITEM: "Action item",
    SUBACTION_ITEM: "Subaction item",
}

# Child list attached to a node of the given level when the forest is built.
CHILD_KEYS: Dict[int, str] = {
    TASK: "subtasks",
    SUBTASK: "actionItems",
    ACTION_ITEM: "subactionItems",
}

# Ancestor pointer column per level.
LEVEL_ID_KEYS: Dict[int, str] = {
    TASK: "level1ID",
    SUBTASK: "level2ID",
    ACTION_ITEM: "level3ID",
    SUBACTION_ITEM: "level4ID",
}

Status = Literal["todo", "in-progress", "complete", "review", "closed", "backlog", "clarification"]
STATUSES = ("todo", "in-progress", "complete", "review", "closed", "backlog", "clarification")
DEFAULT_STATUS: Status = "todo"

# Spellings used by older clients and the legacy uppercase column values.
_STATUS_ALIASES: Dict[str, str] = {
    "inprogress": "in-progress",
    "in progress": "in-progress",
    "in_progress": "in-progress",
}

# Fields carrying ISO-8601 timestamps/dates on the wire.
DATE_FIELDS = ("dueDate", "startDate", "endDate", "createdAt", "modifiedAt")


def normalize_status(value: object) -> Optional[str]:
    """Canonical status for `value`, or None when it is not a known status."""
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    key = _STATUS_ALIASES.get(key, key)
    return key if key in STATUSES else None


def parent_level_key(task_level: int) -> Optional[str]:
    """Ancestor pointer that names the parent of a record at `task_level` (None for roots)."""
    if task_level <= TASK:
        return None
    return LEVEL_ID_KEYS[task_level - 1]
