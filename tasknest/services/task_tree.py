# Rev 0.2.0
"""Flat leveled task records → nested forest (task → subtask → action item → subaction item).

The builder is a pure function of its input: records are copied, never
mutated, and children keep the order in which they appear in the input.
A record whose parent is not in the input is left out of the forest and
reported as an orphan.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from tasknest.models.types import CHILD_KEYS, DATE_FIELDS, TASK, TASK_LEVELS, parent_level_key

log = logging.getLogger(__name__)


@dataclass
class TaskForest:
    roots: List[Dict[str, Any]] = field(default_factory=list)
    orphans: List[Dict[str, Any]] = field(default_factory=list)  # omitted records (copies)


def parse_wire_date(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _node(record: Mapping[str, Any]) -> Dict[str, Any]:
    node = dict(record)
    for key in CHILD_KEYS.values():
        node[key] = []
    node["dueDate"] = parse_wire_date(node.get("dueDate"))
    for key in DATE_FIELDS:
        if key in node:
            node[key] = parse_wire_date(node[key])
    return node


def build_task_forest(records: Iterable[Mapping[str, Any]]) -> TaskForest:
    records = list(records)
    by_id: Dict[Any, Dict[str, Any]] = {}
    for rec in records:
        by_id[rec["id"]] = _node(rec)

    forest = TaskForest()
    for rec in records:
        node = by_id[rec["id"]]
        level = int(rec.get("taskLevel") or 0)
        if level == TASK:
            forest.roots.append(node)
            continue

        pointer = parent_level_key(level) if level in TASK_LEVELS else None
        parent_id = rec.get(pointer) if pointer else None
        parent = by_id.get(parent_id) if parent_id is not None else None
        if parent is None:
            log.warning(
                "Omitting task %s (level %s): parent %s=%s not in record set",
                rec["id"], level, pointer, parent_id,
            )
            forest.orphans.append(node)
            continue
        parent[CHILD_KEYS[level - 1]].append(node)
    return forest


def build_task_tree(records: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Root tasks of the forest built from `records`, orphans dropped."""
    return build_task_forest(records).roots
