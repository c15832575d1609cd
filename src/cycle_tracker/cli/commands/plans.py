"""Plan commands: plans, new, select, delete, show, edit."""

import json
from typing import Annotated, Optional

import typer

from ...core.archiver import resize_activities, set_activity_rest
from ...core.models import Activity
from ...io.serializers import plan_to_dict
from .. import views
from ..app import DataDirOption, UserOption, app, require_plan, tracker_session


@app.command("plans")
def list_plans(
    data_dir: DataDirOption = None,
    user: UserOption = None,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
) -> None:
    """
    List your plans. The selected plan is marked with *.
    """
    with tracker_session(data_dir, user) as tracker:
        if json_out:
            print(json.dumps([
                {"id": plan_id, "active": plan_id == tracker.active_plan_id, **plan_to_dict(plan)}
                for plan_id, plan in tracker.plans
            ], indent=2))
            return

        if not tracker.plans:
            views.print_info("No plans yet. Run 'new' to create one.")
            return
        views.console.print(views.format_plans_table(tracker.plans, tracker.active_plan_id))


@app.command("new")
def new_plan(
    data_dir: DataDirOption = None,
    user: UserOption = None,
) -> None:
    """
    Create a new plan with 7 free sessions and select it.
    """
    with tracker_session(data_dir, user) as tracker:
        plan_id = tracker.create_plan()
        name = tracker.plan.name if tracker.plan is not None else plan_id
        views.print_success(f"Created plan '{name}' ({plan_id})")


@app.command("select")
def select_plan(
    plan_id: Annotated[str, typer.Argument(help="Plan ID (see 'plans')")],
    data_dir: DataDirOption = None,
    user: UserOption = None,
) -> None:
    """
    Select the plan that other commands work on.
    """
    with tracker_session(data_dir, user) as tracker:
        try:
            tracker.select_plan(plan_id)
        except KeyError:
            views.print_error(f"No plan with id {plan_id}")
            raise typer.Exit(1)
        name = tracker.plan.name if tracker.plan is not None else plan_id
        views.print_success(f"Selected plan '{name}'")


@app.command("delete")
def delete_plan(
    data_dir: DataDirOption = None,
    user: UserOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation prompt"),
    ] = False,
) -> None:
    """
    Delete the selected plan and all of its tracking data.

    Your only remaining plan cannot be deleted.
    """
    with tracker_session(data_dir, user) as tracker:
        require_plan(tracker)
        if len(tracker.plans) <= 1:
            views.print_error("Cannot delete your only plan.")
            raise typer.Exit(1)

        name = tracker.plan.name
        if not force and not views.confirm_action(f"Delete plan '{name}' and its tracking data?"):
            views.print_info("Cancelled.")
            raise typer.Exit(0)

        if not tracker.delete_plan():
            views.print_error("Plan was not deleted.")
            raise typer.Exit(1)
        views.print_success(f"Deleted plan '{name}'")
        if tracker.plan is not None:
            views.print_info(f"Selected plan '{tracker.plan.name}'")


@app.command("show")
def show_plan(
    data_dir: DataDirOption = None,
    user: UserOption = None,
) -> None:
    """
    Show the sessions of the selected plan.
    """
    with tracker_session(data_dir, user) as tracker:
        require_plan(tracker)
        if tracker.plan.sessions == 0:
            views.print_warning("This plan has no sessions. Use 'edit --sessions N'.")
            return
        views.console.print(views.format_plan_table(tracker.plan))


def _parse_index(raw: str, count: int) -> int:
    """Parse a 1-based session number into a 0-based index."""
    try:
        number = int(raw)
    except ValueError:
        raise typer.BadParameter(f"Session number must be an integer, got {raw!r}")
    if number < 1 or number > count:
        raise typer.BadParameter(f"Session number must be between 1 and {count}, got {number}")
    return number - 1


@app.command("edit")
def edit_plan(
    data_dir: DataDirOption = None,
    user: UserOption = None,
    name: Annotated[
        Optional[str],
        typer.Option("--name", "-n", help="New plan name"),
    ] = None,
    sessions: Annotated[
        Optional[int],
        typer.Option("--sessions", "-s", help="Cycle length in sessions (1-30)"),
    ] = None,
    activity: Annotated[
        Optional[list[str]],
        typer.Option("--activity", "-a", help="Set session text as N:TEXT (repeatable)"),
    ] = None,
    rest: Annotated[
        Optional[list[int]],
        typer.Option("--rest", "-r", help="Mark session N as a rest day (repeatable)"),
    ] = None,
    no_rest: Annotated[
        Optional[list[int]],
        typer.Option("--no-rest", help="Turn rest day N back into a session (repeatable)"),
    ] = None,
) -> None:
    """
    Edit and save the selected plan.

    If the plan changes, the previous version is archived at the current
    cycle so earlier cycles keep their original sessions.

    Examples:
        edit --sessions 5 -a "1:Push" -a "2:Pull" --rest 3
    """
    with tracker_session(data_dir, user) as tracker:
        require_plan(tracker)
        plan = tracker.plan

        activities = [Activity(a.text, a.is_rest) for a in plan.activities]
        if sessions is not None or not activities:
            activities = resize_activities(activities, sessions if sessions is not None else 1)

        for entry in activity or []:
            number, sep, text = entry.partition(":")
            if not sep:
                raise typer.BadParameter(f"Expected N:TEXT, got {entry!r}", param_hint="--activity")
            i = _parse_index(number.strip(), len(activities))
            activities[i] = Activity(text=text.strip(), is_rest=activities[i].is_rest)

        for number in rest or []:
            i = _parse_index(str(number), len(activities))
            activities[i] = set_activity_rest(activities[i], True)

        for number in no_rest or []:
            i = _parse_index(str(number), len(activities))
            activities[i] = set_activity_rest(activities[i], False)

        decision = tracker.save_plan(
            name if name is not None else plan.name,
            len(activities),
            activities,
        )

        views.print_success(f"Plan '{decision.plan.name}' saved.")
        if decision.archived:
            cycle = tracker.tracking.current_cycle_index + 1 if tracker.tracking else 1
            views.print_info(f"Previous version archived; it still applies to cycles before {cycle}.")
        views.console.print(views.format_plan_table(decision.plan))
