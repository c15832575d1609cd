"""
Per-cycle attendance summary and chart scaling.

Each cycle is counted against the plan that was in force during it, so a
session that was a rest day in an older plan version does not count for
that cycle even if it is an activity now.
"""

from .config import CHART_TOTAL_HEIGHT, DONE, MISSED, PARTIAL
from .grid import status_at
from .models import ChartBar, ChartData, CycleSummary, Plan, TrackingData
from .resolver import plan_for_cycle


def summarize_cycle(plan_for_this_cycle: Plan, tracking: TrackingData, cycle_index: int) -> CycleSummary:
    """Count done/partial/missed over the non-rest sessions of one cycle."""
    summary = CycleSummary()
    for session_index, activity in enumerate(plan_for_this_cycle.activities):
        if activity.is_rest:
            continue
        status = status_at(tracking.grid, session_index, cycle_index)
        if status == DONE:
            summary.done += 1
        elif status == PARTIAL:
            summary.partial += 1
        elif status == MISSED:
            summary.missed += 1
    return summary


def summarize(plan: Plan, tracking: TrackingData) -> list[CycleSummary]:
    """
    Summarize every cycle from 0 to the current cycle inclusive.

    Args:
        plan: Current (canonical) plan
        tracking: Tracking snapshot

    Returns:
        One CycleSummary per cycle; empty when the plan has no sessions
    """
    if plan.sessions <= 0:
        return []
    return [
        summarize_cycle(plan_for_cycle(c, plan, tracking.plan_history), tracking, c)
        for c in range(tracking.current_cycle_index + 1)
    ]


def build_chart(
    summaries: list[CycleSummary],
    total_height: float = CHART_TOTAL_HEIGHT,
) -> ChartData:
    """
    Scale cycle summaries into stacked bar heights.

    The total height is split between a positive band and a negative band in
    proportion maxPositive : maxNegative. Both maxima are floored at 1 so an
    all-zero chart still divides cleanly.

    Args:
        summaries: Output of summarize()
        total_height: Combined height of both bands

    Returns:
        ChartData with one bar per summary
    """
    max_positive = max([s.positive for s in summaries] + [1])
    max_negative = max([s.missed for s in summaries] + [1])

    positive_height = total_height * (max_positive / (max_positive + max_negative))
    negative_height = total_height - positive_height

    bars = [
        ChartBar(
            done_height=positive_height * s.done / max_positive,
            partial_height=positive_height * s.partial / max_positive,
            missed_height=negative_height * s.missed / max_negative,
        )
        for s in summaries
    ]

    return ChartData(
        bars=bars,
        max_positive=max_positive,
        max_negative=max_negative,
        positive_height=positive_height,
        negative_height=negative_height,
    )
