"""
Data models for cycle-tracker.

Core dataclasses for plans, attendance tracking and the derived summary
values. Instances are expected to be canonical: raw documents pass through
core/sanitizer.py before they become models.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from .config import MAX_SESSIONS, STATUS_COUNT

Status = int  # one of config.UNSET / DONE / PARTIAL / MISSED
Direction = Literal["next", "prev"]


@dataclass
class Activity:
    """
    One session position within a plan.

    Rest sessions carry no meaningful text.
    """

    text: str = ""
    is_rest: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Persisted shape of the activity."""
        return {"text": self.text, "isRest": self.is_rest}


@dataclass
class Plan:
    """An ordered list of sessions repeated every cycle."""

    name: str
    sessions: int
    activities: list[Activity] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate plan shape."""
        if not 0 <= self.sessions <= MAX_SESSIONS:
            raise ValueError(f"sessions must be in [0, {MAX_SESSIONS}], got {self.sessions}")
        if len(self.activities) != self.sessions:
            raise ValueError(
                f"expected {self.sessions} activities, got {len(self.activities)}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Persisted shape of the plan."""
        return {
            "name": self.name,
            "sessions": self.sessions,
            "activities": [a.to_dict() for a in self.activities],
        }


@dataclass
class TrackingData:
    """
    Attendance state for one plan.

    grid[session][cycle] holds a status. Rows and columns are sparse: a
    missing entry reads as unset. plan_history maps the cycle index at which
    a plan was replaced to the plan that was in force before it.
    """

    grid: list[list[Status]] = field(default_factory=list)
    current_cycle_index: int = 0
    highest_cycle_index: int = 0
    plan_history: dict[int, Plan] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate cycle pointers and cell values."""
        if self.current_cycle_index < 0:
            raise ValueError("current_cycle_index must be non-negative")
        if self.highest_cycle_index < 0:
            raise ValueError("highest_cycle_index must be non-negative")
        for row in self.grid:
            for value in row:
                if not 0 <= value < STATUS_COUNT:
                    raise ValueError(f"invalid status value: {value}")


@dataclass
class CycleSummary:
    """Attendance counts for one cycle (rest sessions excluded)."""

    done: int = 0
    partial: int = 0
    missed: int = 0

    @property
    def positive(self) -> int:
        return self.done + self.partial


@dataclass
class ChartBar:
    """Heights of the stacked segments for one cycle column."""

    done_height: float
    partial_height: float
    missed_height: float


@dataclass
class ChartData:
    """
    Scaled chart for a sequence of cycle summaries.

    The total height is split into a positive band (done + partial, drawn
    upwards) and a negative band (missed, drawn downwards).
    """

    bars: list[ChartBar]
    max_positive: int
    max_negative: int
    positive_height: float
    negative_height: float


@dataclass
class GridCell:
    """Render-ready state of one (session, cycle) cell."""

    status: Status
    is_rest: bool
    clickable: bool
    upcoming: bool  # column lies after the current cycle
    historical_diff: bool  # past column tracked against a different activity


@dataclass
class GridView:
    """Render-ready attendance grid for the current plan."""

    plan: Plan
    current_cycle_index: int
    highest_cycle_index: int
    columns: int
    rows: list[list[GridCell]]
