# Rev 0.2.0
"""Previous-estimate history (`estPrevHours`), one shape per task level.

Subtasks keep every earlier estimate in order; tasks, action items and
subaction items only remember the last one.
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Tuple, Union

from .types import SUBTASK


@dataclass(frozen=True)
class SingleEstimate:
    value: float = 0.0

    def record(self, previous: float) -> "SingleEstimate":
        return SingleEstimate(float(previous))

    def to_wire(self) -> float:
        return self.value


@dataclass(frozen=True)
class EstimateSeries:
    values: Tuple[float, ...] = field(default_factory=tuple)

    def record(self, previous: float) -> "EstimateSeries":
        return EstimateSeries(self.values + (float(previous),))

    def to_wire(self) -> list[float]:
        return list(self.values)


EstimateHistory = Union[SingleEstimate, EstimateSeries]


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"expected a finite number, got {value!r}")
    return float(value)


def estimate_history_for(task_level: int, raw: Any = None) -> EstimateHistory:
    """
    Build the history variant for `task_level` from its wire/storage form.

    `raw` may be None (empty history), a JSON string, a number or a list of
    numbers. A level-2 record accepts a list or a single number (wrapped);
    every other level accepts a single number only. Raises ValueError on
    malformed JSON or a shape that does not fit the level.
    """
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raw = None
        else:
            try:
                raw = json.loads(text)
            except json.JSONDecodeError as e:
                raise ValueError(f"invalid JSON: {e.msg}") from e

    if task_level == SUBTASK:
        if raw is None:
            return EstimateSeries()
        if isinstance(raw, (list, tuple)):
            return EstimateSeries(tuple(_number(v) for v in raw))
        return EstimateSeries((_number(raw),))

    if raw is None:
        return SingleEstimate()
    if isinstance(raw, (list, tuple)):
        raise ValueError(f"level {task_level} keeps a single previous estimate, not a list")
    return SingleEstimate(_number(raw))
