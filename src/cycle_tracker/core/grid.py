"""
Attendance grid operations.

The grid is a list of rows indexed by session position; each row is a list
of statuses indexed by cycle. Rows and columns grow lazily and anything not
materialized reads as UNSET. Rows are never truncated when a plan shrinks,
so attendance recorded for removed sessions survives.
"""

from .config import STATUS_COUNT, UNSET
from .models import Plan, Status, TrackingData


def status_at(grid: list[list[Status]], session_index: int, cycle_index: int) -> Status:
    """
    Read the status of one cell.

    Returns UNSET for any row or column that has not been materialized.
    """
    if session_index < 0 or cycle_index < 0 or session_index >= len(grid):
        return UNSET
    row = grid[session_index]
    if cycle_index >= len(row):
        return UNSET
    return row[cycle_index]


def next_status(value: Status) -> Status:
    """unset -> done -> partial -> missed -> unset."""
    return (value + 1) % STATUS_COUNT


def is_toggleable(
    plan: Plan,
    tracking: TrackingData,
    session_index: int,
    cycle_index: int,
) -> bool:
    """
    Check whether a cell may be toggled.

    Only the live cycle column is writable, and only for non-rest sessions
    that exist in the current plan.
    """
    if cycle_index != tracking.current_cycle_index:
        return False
    if not 0 <= session_index < plan.sessions:
        return False
    return not plan.activities[session_index].is_rest


def toggle(
    grid: list[list[Status]],
    session_index: int,
    cycle_index: int,
    session_count: int,
) -> list[list[Status]]:
    """
    Advance one cell to its next status and return the new grid.

    The input grid is not mutated. Rows are padded with empty rows up to
    session_count (and up to session_index), and the target row is padded
    with UNSET up to cycle_index.
    """
    new_grid = [list(row) for row in grid]
    while len(new_grid) < max(session_count, session_index + 1):
        new_grid.append([])

    row = new_grid[session_index]
    while len(row) <= cycle_index:
        row.append(UNSET)
    row[cycle_index] = next_status(row[cycle_index])
    return new_grid


def toggle_cell(
    plan: Plan,
    tracking: TrackingData,
    session_index: int,
    cycle_index: int,
) -> TrackingData:
    """
    Toggle a cell on a tracking snapshot.

    A request for a non-writable cell is a no-op: the same snapshot is
    returned unchanged.
    """
    if not is_toggleable(plan, tracking, session_index, cycle_index):
        return tracking
    return TrackingData(
        grid=toggle(tracking.grid, session_index, cycle_index, plan.sessions),
        current_cycle_index=tracking.current_cycle_index,
        highest_cycle_index=tracking.highest_cycle_index,
        plan_history=dict(tracking.plan_history),
    )
