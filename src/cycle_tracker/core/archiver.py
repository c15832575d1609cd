"""
Plan save path: final normalization, change detection and archiving.

When a saved plan differs from the stored one, the outgoing plan is
archived under the current cycle index so that past cycles keep rendering
against the plan they were tracked with.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .config import FREE_TEXT, MAX_SESSIONS, MIN_EDITOR_SESSIONS
from .models import Activity, Plan
from .sanitizer import sanitize_plan, to_safe_int


@dataclass
class SaveDecision:
    """What a save must persist. history is None when it must not be written."""

    plan: Plan
    history: dict[int, Plan] | None

    @property
    def archived(self) -> bool:
        return self.history is not None


def finalize_plan(raw: Any) -> Plan:
    """
    Sanitize editor input for persisting.

    Non-rest sessions with blank text become FREE_TEXT; rest sessions have
    their text cleared.
    """
    plan = sanitize_plan(raw)
    activities = []
    for activity in plan.activities:
        if activity.is_rest:
            activities.append(Activity(text="", is_rest=True))
        elif not activity.text.strip():
            activities.append(Activity(text=FREE_TEXT, is_rest=False))
        else:
            activities.append(Activity(text=activity.text, is_rest=False))
    return Plan(name=plan.name, sessions=plan.sessions, activities=activities)


def plan_has_changed(old_plan: Any, new_plan: Any) -> bool:
    """Structural comparison of name, sessions and activities after sanitizing."""
    return sanitize_plan(old_plan) != sanitize_plan(new_plan)


def prepare_save(
    new_plan_input: Any,
    old_plan: Any,
    history: Mapping[int, Plan],
    current_cycle_index: int,
) -> SaveDecision:
    """
    Decide what a plan save persists.

    The old plan is archived at history[current_cycle_index] (replacing any
    earlier snapshot at that key) only if the plan changed and the old plan
    had at least one session. Other history keys are carried over untouched.

    Args:
        new_plan_input: Raw or canonical plan coming from the editor
        old_plan: Stored plan (raw document, Plan, or None)
        history: Existing plan history
        current_cycle_index: Cycle pointer at save time

    Returns:
        SaveDecision with the plan to write and, if archiving, the new history
    """
    new_plan = finalize_plan(new_plan_input)
    old = sanitize_plan(old_plan) if old_plan is not None else Plan(name="", sessions=0)

    if not plan_has_changed(old, new_plan) or old.sessions <= 0:
        return SaveDecision(plan=new_plan, history=None)

    merged = dict(history)
    merged[current_cycle_index] = old
    return SaveDecision(plan=new_plan, history=merged)


# =============================================================================
# Editor helpers
# =============================================================================


def resize_activities(activities: list[Activity], sessions: Any) -> list[Activity]:
    """
    Resize the editor's activity list, keeping existing entries.

    The editor works with at least MIN_EDITOR_SESSIONS and at most
    MAX_SESSIONS rows; invalid counts fall back to the minimum.
    """
    count = max(MIN_EDITOR_SESSIONS, to_safe_int(sessions, MIN_EDITOR_SESSIONS, MAX_SESSIONS))
    return [
        Activity(text=activities[i].text, is_rest=activities[i].is_rest)
        if i < len(activities)
        else Activity()
        for i in range(count)
    ]


def set_activity_rest(activity: Activity, is_rest: bool) -> Activity:
    """Flip the rest flag; marking a session as rest clears its text."""
    return Activity(text="" if is_rest else activity.text, is_rest=is_rest)
