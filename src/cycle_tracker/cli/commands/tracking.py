"""Tracking commands: grid, toggle, next, prev, summary."""

import json
from dataclasses import asdict
from typing import Annotated, Optional

import typer

from ...core.config import NEXT, PREV, STATUS_LABELS
from ...core.engine.config_loader import load_settings
from ...core.grid import status_at
from .. import views
from ..app import DataDirOption, UserOption, app, require_plan, tracker_session


@app.command("grid")
def grid(
    data_dir: DataDirOption = None,
    user: UserOption = None,
) -> None:
    """
    Show the attendance grid of the selected plan.
    """
    with tracker_session(data_dir, user) as tracker:
        require_plan(tracker)
        view = tracker.grid_view()
        if view is None or view.plan.sessions == 0:
            views.print_warning("This plan has no sessions. Use 'edit --sessions N'.")
            return
        views.print_grid(view)


@app.command("toggle")
def toggle(
    session: Annotated[int, typer.Argument(help="Session number (1-based)")],
    cycle: Annotated[
        Optional[int],
        typer.Option("--cycle", "-c", help="Cycle number (1-based, default: current cycle)"),
    ] = None,
    data_dir: DataDirOption = None,
    user: UserOption = None,
) -> None:
    """
    Advance a session's status in the current cycle: unset, done, partial, missed.
    """
    with tracker_session(data_dir, user) as tracker:
        require_plan(tracker)
        current = tracker.tracking.current_cycle_index
        cycle_index = current if cycle is None else cycle - 1
        session_index = session - 1

        if not tracker.toggle_cell(session_index, cycle_index):
            if cycle_index != current:
                views.print_error(f"Only the current cycle ({current + 1}) can be changed.")
            elif not 0 <= session_index < tracker.plan.sessions:
                views.print_error(f"Session must be between 1 and {tracker.plan.sessions}")
            else:
                views.print_error(f"Session {session} is a rest day.")
            raise typer.Exit(1)

        status = status_at(tracker.tracking.grid, session_index, cycle_index)
        text = tracker.plan.activities[session_index].text
        views.print_success(
            f"Session {session} ({text}), cycle {cycle_index + 1}: {STATUS_LABELS[status]}"
        )


def _change_cycle(direction: str, data_dir, user) -> None:
    with tracker_session(data_dir, user) as tracker:
        require_plan(tracker)
        before = tracker.tracking.current_cycle_index
        updated = tracker.change_cycle(direction)
        if updated is None:
            views.print_error("No tracking data loaded.")
            raise typer.Exit(1)
        if updated.current_cycle_index == before:
            views.print_info(f"Already at cycle {before + 1}.")
        else:
            views.print_success(f"Now tracking cycle {updated.current_cycle_index + 1}")


@app.command("next")
def next_cycle(
    data_dir: DataDirOption = None,
    user: UserOption = None,
) -> None:
    """
    Move on to the next cycle.
    """
    _change_cycle(NEXT, data_dir, user)


@app.command("prev")
def prev_cycle(
    data_dir: DataDirOption = None,
    user: UserOption = None,
) -> None:
    """
    Go back to the previous cycle.
    """
    _change_cycle(PREV, data_dir, user)


@app.command("summary")
def summary(
    data_dir: DataDirOption = None,
    user: UserOption = None,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
) -> None:
    """
    Show done/partial/missed counts per cycle with a chart.

    Each cycle is counted against the plan version in force at the time.
    """
    settings = load_settings()
    with tracker_session(data_dir, user) as tracker:
        require_plan(tracker)
        summaries = tracker.summary()
        chart = tracker.chart(settings["chart_height"])

        if json_out:
            print(json.dumps({
                "cycles": [asdict(s) for s in summaries],
                "chart": asdict(chart),
            }, indent=2))
            return

        views.print_summary(summaries, chart)
