"""Cycle pointer bookkeeping."""

from .config import NEXT, PREV
from .models import Direction, TrackingData


def advance(direction: Direction, tracking: TrackingData) -> TrackingData:
    """
    Move the current cycle pointer one step.

    "prev" stops at cycle 0 and leaves the highest index alone; "next" is
    unbounded and raises the highest index when it is passed.

    Raises:
        ValueError: If direction is neither "next" nor "prev"
    """
    if direction == NEXT:
        current = tracking.current_cycle_index + 1
    elif direction == PREV:
        current = max(0, tracking.current_cycle_index - 1)
    else:
        raise ValueError(f"Unknown direction: {direction!r}. Use 'next' or 'prev'.")

    return TrackingData(
        grid=tracking.grid,
        current_cycle_index=current,
        highest_cycle_index=max(tracking.highest_cycle_index, current),
        plan_history=tracking.plan_history,
    )


def visible_columns(highest_cycle_index: int) -> int:
    """Columns to render: every cycle reached so far plus one upcoming."""
    return max(1, highest_cycle_index + 2)
