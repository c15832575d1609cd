"""
JSON serialization for plan and tracking documents.

Handles conversion between the core dataclasses and the persisted
document dicts. Reading always goes through the sanitizers, so any
readable mapping becomes a valid model.
"""

import json
from typing import Any

from ..core.config import FREE_TEXT, NEW_PLAN_NAME_TEMPLATE, NEW_PLAN_SESSIONS
from ..core.models import Plan, TrackingData
from ..core.sanitizer import sanitize_plan, sanitize_tracking


class ValidationError(Exception):
    """Raised when a document cannot be read as a mapping at all."""

    pass


def plan_to_dict(plan: Plan) -> dict[str, Any]:
    """
    Convert Plan to its persisted document.

    Args:
        plan: Plan to convert

    Returns:
        Dict with name, sessions and activities
    """
    return plan.to_dict()


def dict_to_plan(data: dict[str, Any] | None) -> Plan:
    """Convert a plan document (or None) to a canonical Plan."""
    return sanitize_plan(data)


def tracking_to_dict(tracking: TrackingData) -> dict[str, Any]:
    """
    Convert TrackingData to its persisted document.

    Grid rows are wrapped as {"row": [...]} and history keys are written as
    strings, which is what a JSON object key becomes anyway.

    Args:
        tracking: Tracking snapshot to convert

    Returns:
        Dict with grid, currentCycleIndex, highestCycleIndex, planHistory
    """
    return {
        "grid": [{"row": list(row)} for row in tracking.grid],
        "currentCycleIndex": tracking.current_cycle_index,
        "highestCycleIndex": tracking.highest_cycle_index,
        "planHistory": history_to_dict(tracking.plan_history),
    }


def history_to_dict(history: dict[int, Plan]) -> dict[str, Any]:
    """Convert plan history to its persisted form, keys in ascending order."""
    return {str(k): history[k].to_dict() for k in sorted(history)}


def dict_to_tracking(data: dict[str, Any] | None) -> TrackingData:
    """Convert a tracking document (or None) to canonical TrackingData."""
    return sanitize_tracking(data)


def new_plan_document(existing_count: int) -> dict[str, Any]:
    """Document for a freshly created plan: NEW_PLAN_SESSIONS free sessions."""
    return {
        "name": NEW_PLAN_NAME_TEMPLATE.format(n=existing_count + 1),
        "sessions": NEW_PLAN_SESSIONS,
        "activities": [{"text": FREE_TEXT, "isRest": False} for _ in range(NEW_PLAN_SESSIONS)],
    }


def new_tracking_document(sessions: int = NEW_PLAN_SESSIONS) -> dict[str, Any]:
    """Empty tracking document with one empty row per session."""
    return {
        "grid": [{"row": []} for _ in range(sessions)],
        "currentCycleIndex": 0,
        "highestCycleIndex": 0,
        "planHistory": {},
    }


def parse_document(text: str, source: str = "<document>") -> dict[str, Any]:
    """
    Parse a JSON document.

    Args:
        text: JSON text
        source: Name used in error messages

    Returns:
        Parsed mapping

    Raises:
        ValidationError: If the text is not JSON or not a JSON object
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {source}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(
            f"Expected a JSON object in {source}, got {type(data).__name__}"
        )
    return data


def dump_document(data: dict[str, Any]) -> str:
    """Serialize a document to JSON text."""
    return json.dumps(data, indent=2, ensure_ascii=False)
