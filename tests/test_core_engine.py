"""
Unit tests for the cycle-tracker core engine.

Covers plan sanitizing, plan version resolution, the attendance grid,
cycle navigation, summary aggregation with chart scaling, and the plan
save/archive path. Everything here runs on in-memory values only.
"""

import math

import pytest

from cycle_tracker.core.archiver import (
    finalize_plan,
    plan_has_changed,
    prepare_save,
    resize_activities,
    set_activity_rest,
)
from cycle_tracker.core.config import (
    CHART_TOTAL_HEIGHT,
    DEFAULT_PLAN_NAME,
    DONE,
    FREE_TEXT,
    MAX_SESSIONS,
    MISSED,
    PARTIAL,
    UNSET,
)
from cycle_tracker.core.grid import is_toggleable, next_status, status_at, toggle, toggle_cell
from cycle_tracker.core.models import Activity, CycleSummary, Plan, TrackingData
from cycle_tracker.core.navigator import advance, visible_columns
from cycle_tracker.core.resolver import plan_for_cycle, plans_for_cycles
from cycle_tracker.core.sanitizer import sanitize_plan, sanitize_tracking, to_safe_int
from cycle_tracker.core.summary import build_chart, summarize

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _plan(*texts: str, name: str = "Test Plan") -> Plan:
    """Build a plan; the text 'REST' marks a rest session."""
    activities = [
        Activity(text="", is_rest=True) if t == "REST" else Activity(text=t, is_rest=False)
        for t in texts
    ]
    return Plan(name=name, sessions=len(activities), activities=activities)


def _tracking(grid=None, current=0, highest=None, history=None) -> TrackingData:
    return TrackingData(
        grid=grid or [],
        current_cycle_index=current,
        highest_cycle_index=current if highest is None else highest,
        plan_history=history or {},
    )


# ===========================================================================
# Sanitizer
# ===========================================================================


class TestToSafeInt:
    def test_numbers_are_floored(self):
        assert to_safe_int(4.9) == 4
        assert to_safe_int("7") == 7

    def test_cap_applies(self):
        assert to_safe_int(99, maximum=30) == 30

    def test_invalid_values_use_default(self):
        assert to_safe_int(None, 5) == 5
        assert to_safe_int("abc", 5) == 5
        assert to_safe_int(-3, 5) == 5
        assert to_safe_int(float("nan"), 5) == 5
        assert to_safe_int(float("inf"), 5) == 5
        assert to_safe_int([1], 5) == 5

    def test_bool_counts_as_number(self):
        assert to_safe_int(True) == 1


class TestSanitizePlan:
    @pytest.mark.parametrize(
        "raw",
        [
            None,
            {},
            [],
            "plan",
            42,
            {"sessions": "x", "activities": "nope"},
            {"sessions": -4},
            {"sessions": 1000, "activities": [None, 3, "a"]},
            {"sessions": 2.7, "activities": [{"text": 5, "isRest": "yes"}]},
        ],
    )
    def test_total_and_in_range(self, raw):
        """Any input yields a plan with 0 <= sessions <= 30 and matching activities."""
        plan = sanitize_plan(raw)
        assert 0 <= plan.sessions <= MAX_SESSIONS
        assert len(plan.activities) == plan.sessions

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            {"name": "", "sessions": 3},
            {"name": "Legs", "sessions": "2", "activities": [{"text": "Squat", "isRest": 0}]},
            {"sessions": 40, "activities": [{"text": "x"}] * 50},
        ],
    )
    def test_idempotent(self, raw):
        once = sanitize_plan(raw)
        assert sanitize_plan(once) == once
        assert sanitize_plan(once.to_dict()) == once

    def test_missing_activities_are_synthesized(self):
        plan = sanitize_plan({"name": "A", "sessions": 3, "activities": [{"text": "Run", "isRest": False}]})
        assert plan.activities == [
            Activity("Run", False),
            Activity("", False),
            Activity("", False),
        ]

    def test_excess_activities_are_dropped(self):
        raw = {"sessions": 1, "activities": [{"text": "a"}, {"text": "b"}]}
        assert sanitize_plan(raw).activities == [Activity("a", False)]

    def test_field_coercion(self):
        raw = {"sessions": 2, "activities": [{"text": 12, "isRest": 1}, {"isRest": ""}]}
        plan = sanitize_plan(raw)
        assert plan.activities[0] == Activity("", True)
        assert plan.activities[1] == Activity("", False)

    def test_name_defaults(self):
        assert sanitize_plan({"name": ""}).name == DEFAULT_PLAN_NAME
        assert sanitize_plan({"name": 7}).name == DEFAULT_PLAN_NAME
        assert sanitize_plan({"name": "Upper"}).name == "Upper"

    def test_sessions_capped(self):
        assert sanitize_plan({"sessions": 31}).sessions == 30


class TestSanitizeTracking:
    def test_empty_document(self):
        tracking = sanitize_tracking(None)
        assert tracking == TrackingData()

    def test_rows_and_statuses(self):
        raw = {"grid": [{"row": [1, 2, 3]}, {"row": "bad"}, {}, [0, 9, True, "2"]]}
        tracking = sanitize_tracking(raw)
        assert tracking.grid == [[1, 2, 3], [], [], [0, 0, 0, 0]]

    def test_history_keys_parsed(self):
        raw = {
            "planHistory": {
                "3": {"name": "Old", "sessions": 1, "activities": [{"text": "a"}]},
                "x": {"sessions": 2},
                "-1": {"sessions": 2},
            }
        }
        tracking = sanitize_tracking(raw)
        assert list(tracking.plan_history) == [3]
        assert tracking.plan_history[3].name == "Old"

    def test_highest_never_below_current(self):
        tracking = sanitize_tracking({"currentCycleIndex": 4, "highestCycleIndex": 1})
        assert tracking.current_cycle_index == 4
        assert tracking.highest_cycle_index == 4


# ===========================================================================
# Resolver
# ===========================================================================


class TestPlanForCycle:
    def setup_method(self):
        self.v1 = _plan("a", "b", name="v1")
        self.v2 = _plan("c", name="v2")
        self.current = _plan("d", "e", "f", name="current")
        self.history = {3: self.v1, 7: self.v2}

    @pytest.mark.parametrize(
        "cycle, expected",
        [(0, "v1"), (2, "v1"), (3, "v2"), (5, "v2"), (6, "v2"), (7, "current"), (8, "current")],
    )
    def test_smallest_key_above_cycle(self, cycle, expected):
        assert plan_for_cycle(cycle, self.current, self.history).name == expected

    def test_documented_examples(self):
        """A snapshot under key k covers only cycles strictly before k."""
        assert plan_for_cycle(2, self.current, self.history) == self.v1
        assert plan_for_cycle(5, self.current, self.history) == self.v2
        assert plan_for_cycle(8, self.current, self.history) is self.current

    def test_empty_history_returns_current(self):
        assert plan_for_cycle(0, self.current, {}) is self.current

    def test_key_order_does_not_matter(self):
        history = {7: self.v2, 3: self.v1}
        assert plan_for_cycle(1, self.current, history) == self.v1

    def test_plans_for_cycles(self):
        names = [p.name for p in plans_for_cycles(9, self.current, self.history)]
        assert names == ["v1"] * 3 + ["v2"] * 4 + ["current"] * 2


# ===========================================================================
# Attendance grid
# ===========================================================================


class TestGrid:
    def test_status_at_missing_reads_unset(self):
        grid = [[1], []]
        assert status_at(grid, 0, 0) == DONE
        assert status_at(grid, 0, 5) == UNSET
        assert status_at(grid, 1, 0) == UNSET
        assert status_at(grid, 9, 0) == UNSET
        assert status_at(grid, -1, 0) == UNSET

    def test_next_status_cycles(self):
        assert [next_status(s) for s in (0, 1, 2, 3)] == [1, 2, 3, 0]

    def test_toggle_grows_rows_and_columns(self):
        new = toggle([], 1, 2, session_count=3)
        assert new == [[], [0, 0, 1], []]

    def test_toggle_does_not_mutate_input(self):
        grid = [[1, 2], [3]]
        new = toggle(grid, 0, 1, session_count=2)
        assert grid == [[1, 2], [3]]
        assert new == [[1, 3], [3]]

    def test_toggle_keeps_rows_beyond_plan(self):
        grid = [[1], [2], [3], [1]]
        new = toggle(grid, 0, 0, session_count=2)
        assert len(new) == 4
        assert new[1:] == grid[1:]

    def test_repeated_toggle_cycles_through_states(self):
        plan = _plan("a", "b")
        tracking = _tracking()
        seen = []
        for _ in range(5):
            tracking = toggle_cell(plan, tracking, 1, 0)
            seen.append(status_at(tracking.grid, 1, 0))
        assert seen == [DONE, PARTIAL, MISSED, UNSET, DONE]

    def test_toggle_other_cycle_is_noop(self):
        plan = _plan("a")
        tracking = _tracking(grid=[[1, 0]], current=1)
        assert toggle_cell(plan, tracking, 0, 0) is tracking
        assert not is_toggleable(plan, tracking, 0, 2)

    def test_toggle_rest_session_is_noop(self):
        plan = _plan("a", "REST")
        tracking = _tracking()
        assert toggle_cell(plan, tracking, 1, 0) is tracking

    def test_toggle_out_of_range_session_is_noop(self):
        plan = _plan("a")
        tracking = _tracking()
        assert toggle_cell(plan, tracking, 3, 0) is tracking


# ===========================================================================
# Navigation
# ===========================================================================


class TestNavigator:
    def test_next_raises_highest(self):
        t = advance("next", _tracking())
        assert (t.current_cycle_index, t.highest_cycle_index) == (1, 1)

    def test_prev_stops_at_zero(self):
        t = advance("prev", _tracking())
        assert (t.current_cycle_index, t.highest_cycle_index) == (0, 0)

    def test_prev_keeps_highest(self):
        t = advance("prev", _tracking(current=3, highest=5))
        assert (t.current_cycle_index, t.highest_cycle_index) == (2, 5)

    def test_monotonic_over_sequence(self):
        t = _tracking()
        highest = 0
        for direction in ["next", "next", "prev", "prev", "prev", "next", "next", "next", "prev"]:
            t = advance(direction, t)
            assert t.current_cycle_index >= 0
            assert t.highest_cycle_index >= highest
            assert t.highest_cycle_index >= t.current_cycle_index
            highest = t.highest_cycle_index
        assert (t.current_cycle_index, t.highest_cycle_index) == (2, 3)

    def test_unknown_direction(self):
        with pytest.raises(ValueError):
            advance("sideways", _tracking())

    def test_visible_columns(self):
        assert visible_columns(0) == 2
        assert visible_columns(4) == 6


# ===========================================================================
# Summary and chart
# ===========================================================================


class TestSummary:
    def test_single_cycle_counts(self):
        plan = _plan("a", "b", "c")
        tracking = _tracking(grid=[[1], [2], [3]])
        assert summarize(plan, tracking) == [CycleSummary(done=1, partial=1, missed=1)]

    def test_rest_sessions_do_not_count(self):
        plan = _plan("a", "REST")
        tracking = _tracking(grid=[[1], [3]])
        assert summarize(plan, tracking) == [CycleSummary(done=1)]

    def test_one_entry_per_cycle_up_to_current(self):
        plan = _plan("a")
        tracking = _tracking(grid=[[1, 3, 2, 1]], current=2, highest=3)
        assert summarize(plan, tracking) == [
            CycleSummary(done=1),
            CycleSummary(missed=1),
            CycleSummary(partial=1),
        ]

    def test_empty_plan_has_no_summary(self):
        assert summarize(Plan(name="x", sessions=0), _tracking(current=3)) == []

    def test_past_cycles_use_archived_plan(self):
        """Session 2 was a rest day before cycle 1, so its mark in cycle 0 is ignored."""
        old = _plan("a", "REST")
        current = _plan("a", "b")
        tracking = _tracking(grid=[[1, 1], [3, 3]], current=1, history={1: old})
        assert summarize(current, tracking) == [
            CycleSummary(done=1),
            CycleSummary(done=1, missed=1),
        ]

    def test_removed_sessions_still_count_for_old_cycles(self):
        old = _plan("a", "b", "c")
        current = _plan("a")
        tracking = _tracking(grid=[[1, 1], [2, 2], [3, 3]], current=1, history={1: old})
        assert summarize(current, tracking) == [
            CycleSummary(done=1, partial=1, missed=1),
            CycleSummary(done=1),
        ]


class TestChart:
    def test_all_zero_uses_floor_of_one(self):
        chart = build_chart([CycleSummary()])
        assert chart.max_positive == 1
        assert chart.max_negative == 1
        assert chart.positive_height == pytest.approx(CHART_TOTAL_HEIGHT / 2)
        assert chart.bars[0].done_height == 0

    def test_band_split_and_stacking(self):
        summaries = [CycleSummary(done=2, partial=1, missed=1), CycleSummary(done=1, missed=0)]
        chart = build_chart(summaries, total_height=100)
        # maxPositive = 3, maxNegative = 1 -> 75 / 25 split
        assert chart.positive_height == pytest.approx(75)
        assert chart.negative_height == pytest.approx(25)
        assert chart.bars[0].done_height == pytest.approx(50)
        assert chart.bars[0].partial_height == pytest.approx(25)
        assert chart.bars[0].missed_height == pytest.approx(25)
        assert chart.bars[1].done_height == pytest.approx(25)
        assert chart.bars[1].missed_height == 0

    def test_empty_summaries(self):
        chart = build_chart([])
        assert chart.bars == []
        assert math.isclose(chart.positive_height + chart.negative_height, CHART_TOTAL_HEIGHT)


# ===========================================================================
# Save path
# ===========================================================================


class TestArchiver:
    def setup_method(self):
        self.old = _plan("Push", "Pull", "REST", "Legs", "Core", name="Week")

    def test_finalize_fills_free_and_clears_rest(self):
        raw = {
            "name": "X",
            "sessions": 3,
            "activities": [
                {"text": "   ", "isRest": False},
                {"text": "leftover", "isRest": True},
                {"text": "Run", "isRest": False},
            ],
        }
        plan = finalize_plan(raw)
        assert plan.activities == [
            Activity(FREE_TEXT, False),
            Activity("", True),
            Activity("Run", False),
        ]

    def test_unchanged_plan_never_archives(self):
        decision = prepare_save(self.old.to_dict(), self.old, {}, 4)
        assert decision.history is None
        assert not decision.archived
        assert decision.plan == self.old

    def test_text_change_archives_old_plan(self):
        new = self.old.to_dict()
        new["activities"][0]["text"] = "Bench"
        existing = {2: _plan("a", name="older")}
        decision = prepare_save(new, self.old, existing, 4)
        assert decision.archived
        assert decision.history == {2: existing[2], 4: self.old}
        assert decision.plan.activities[0].text == "Bench"
        assert existing == {2: _plan("a", name="older")}

    def test_same_key_is_overwritten(self):
        new = self.old.to_dict()
        new["name"] = "Renamed"
        decision = prepare_save(new, self.old, {4: _plan("zzz")}, 4)
        assert decision.history == {4: self.old}

    def test_empty_old_plan_is_not_archived(self):
        decision = prepare_save(self.old.to_dict(), None, {}, 0)
        assert decision.history is None
        decision = prepare_save(self.old.to_dict(), {"sessions": 0}, {}, 0)
        assert decision.history is None

    def test_has_changed_compares_sanitized(self):
        assert not plan_has_changed({"name": "A", "sessions": "1"}, {"name": "A", "sessions": 1})
        assert plan_has_changed({"name": "A"}, {"name": "B"})

    def test_resize_keeps_existing_entries(self):
        acts = [Activity("a"), Activity("", True)]
        assert resize_activities(acts, 3) == [Activity("a"), Activity("", True), Activity()]
        assert resize_activities(acts, 1) == [Activity("a")]
        assert len(resize_activities(acts, 0)) == 1
        assert len(resize_activities(acts, 99)) == MAX_SESSIONS
        assert len(resize_activities(acts, "junk")) == 1

    def test_set_rest_clears_text(self):
        assert set_activity_rest(Activity("Run"), True) == Activity("", True)
        assert set_activity_rest(Activity("", True), False) == Activity("", False)
