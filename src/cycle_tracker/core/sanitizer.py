"""
Normalization of raw plan and tracking documents.

This is the only place where document shapes are checked. Both sanitizers
are total: any input, including None or a malformed mapping, yields a
canonical model. Malformed fields are coerced to safe defaults rather than
rejected.
"""

import math
from collections.abc import Mapping, Sequence
from typing import Any

from .config import DEFAULT_PLAN_NAME, MAX_SESSIONS, SAFE_INT_MAX, STATUS_COUNT
from .models import Activity, Plan, Status, TrackingData


def to_safe_int(value: Any, default: int = 0, maximum: int = SAFE_INT_MAX) -> int:
    """
    Coerce a value to a non-negative integer, floored and capped.

    Args:
        value: Any value (number, numeric string, bool, None, ...)
        default: Returned when the value is not a finite non-negative number
        maximum: Upper cap applied after flooring

    Returns:
        Integer in [0, maximum], or default
    """
    if value is None:
        return default
    if isinstance(value, int):
        # bool is an int subclass: True -> 1, False -> 0
        return default if value < 0 else min(int(value), maximum)
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            number = 0.0
        else:
            try:
                number = float(stripped)
            except ValueError:
                return default
    else:
        return default

    if not math.isfinite(number) or number < 0:
        return default
    return min(math.floor(number), maximum)


def _get(raw: Any, key: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(key)
    return None


def _sanitize_activity(raw: Any) -> Activity:
    if isinstance(raw, Activity):
        raw = raw.to_dict()
    text = _get(raw, "text")
    return Activity(
        text=text if isinstance(text, str) else "",
        is_rest=bool(_get(raw, "isRest")),
    )


def sanitize_plan(raw: Any) -> Plan:
    """
    Normalize arbitrary plan input into a canonical Plan.

    - sessions: non-negative integer, floored, capped at MAX_SESSIONS (0 if invalid)
    - activities: exactly `sessions` entries; missing ones default to a blank
      non-rest activity, extra ones are dropped
    - name: the raw name if it is a non-empty string, else DEFAULT_PLAN_NAME

    Idempotent: sanitize_plan(sanitize_plan(x)) == sanitize_plan(x).
    """
    if isinstance(raw, Plan):
        raw = raw.to_dict()

    sessions = to_safe_int(_get(raw, "sessions"), 0, MAX_SESSIONS)

    raw_activities = _get(raw, "activities")
    if isinstance(raw_activities, str) or not isinstance(raw_activities, Sequence):
        raw_activities = []

    activities = [
        _sanitize_activity(raw_activities[i] if i < len(raw_activities) else None)
        for i in range(sessions)
    ]

    name = _get(raw, "name")
    if not isinstance(name, str) or not name:
        name = DEFAULT_PLAN_NAME

    return Plan(name=name, sessions=sessions, activities=activities)


def _sanitize_status(value: Any) -> Status:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value if 0 <= value < STATUS_COUNT else 0


def _sanitize_row(raw: Any) -> list[Status]:
    # Persisted rows are wrapped as {"row": [...]}; bare lists are accepted too.
    cells = raw.get("row") if isinstance(raw, Mapping) else raw
    if isinstance(cells, str) or not isinstance(cells, Sequence):
        return []
    return [_sanitize_status(v) for v in cells]


def _history_key(key: Any) -> int | None:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key if key >= 0 else None
    if isinstance(key, str) and key.strip().isdecimal():
        return int(key.strip())
    return None


def sanitize_tracking(raw: Any) -> TrackingData:
    """
    Normalize a raw tracking document into TrackingData.

    The highest cycle index is raised to the current one when a document
    reports it lower. History keys that are not non-negative integers are
    dropped; every snapshot is sanitized as a plan.
    """
    raw_grid = _get(raw, "grid")
    if isinstance(raw_grid, str) or not isinstance(raw_grid, Sequence):
        raw_grid = []
    grid = [_sanitize_row(item) for item in raw_grid]

    current = to_safe_int(_get(raw, "currentCycleIndex"), 0)
    highest = max(to_safe_int(_get(raw, "highestCycleIndex"), 0), current)

    history: dict[int, Plan] = {}
    raw_history = _get(raw, "planHistory")
    if isinstance(raw_history, Mapping):
        for key, snapshot in raw_history.items():
            index = _history_key(key)
            if index is not None:
                history[index] = sanitize_plan(snapshot)

    return TrackingData(
        grid=grid,
        current_cycle_index=current,
        highest_cycle_index=highest,
        plan_history=history,
    )
