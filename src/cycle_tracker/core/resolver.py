"""
Plan version resolution for historical cycles.

plan_history[k] holds the plan that was in force for every cycle before k,
up to the moment it was replaced while the current cycle pointer was k.
The plan for cycle c is therefore the snapshot under the smallest key
greater than c, or the current plan when no such key exists.
"""

from collections.abc import Mapping

from .models import Plan
from .sanitizer import sanitize_plan


def plan_for_cycle(
    cycle_index: int,
    current_plan: Plan,
    plan_history: Mapping[int, Plan],
) -> Plan:
    """
    Return the plan that was active during a given cycle.

    Args:
        cycle_index: 0-based cycle index
        current_plan: The plan in force now (assumed canonical)
        plan_history: Archived snapshots keyed by replacement cycle index

    Returns:
        The applicable archived snapshot, or current_plan unchanged
    """
    applicable_key = min((k for k in plan_history if k > cycle_index), default=None)
    if applicable_key is None:
        return current_plan
    return sanitize_plan(plan_history[applicable_key])


def plans_for_cycles(
    cycle_count: int,
    current_plan: Plan,
    plan_history: Mapping[int, Plan],
) -> list[Plan]:
    """Resolve the plan for every cycle in [0, cycle_count)."""
    return [plan_for_cycle(c, current_plan, plan_history) for c in range(cycle_count)]
