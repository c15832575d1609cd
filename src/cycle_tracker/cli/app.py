"""Shared Typer app object, shared option types, and tracker utility."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer

from ..core.engine.config_loader import load_settings
from ..io.document_store import DocumentStore
from ..io.errors import TrackerError
from ..io.identity import resolve_user_id
from ..tracker import PlanTracker
from . import views

# Shared options used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-d", help="Data directory (default: ~/.cycle-tracker)"),
]
UserOption = Annotated[
    Optional[str],
    typer.Option("--user", "-u", help="User id (default: $CYCLE_TRACKER_USER or login name)"),
]

app = typer.Typer(
    name="cycle-tracker",
    help="Track attendance across repeating training plan cycles.",
    no_args_is_help=False,
    invoke_without_command=True,
)


def get_tracker(data_dir: Path | None, user: str | None) -> PlanTracker:
    """Build an (unopened) tracker from settings, options and identity."""
    settings = load_settings()
    user_id = resolve_user_id(user, settings)
    store = DocumentStore(data_dir or Path(settings["data_dir"]), settings["app_id"])
    return PlanTracker(store, user_id)


@contextmanager
def tracker_session(data_dir: Path | None, user: str | None) -> Iterator[PlanTracker]:
    """
    Open a tracker for one command and always close it.

    Tracker errors are printed and turned into exit code 1.
    """
    tracker: PlanTracker | None = None
    try:
        tracker = get_tracker(data_dir, user)
        tracker.open()
        yield tracker
        if tracker.last_error is not None:
            views.print_warning(str(tracker.last_error))
    except TrackerError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    finally:
        if tracker is not None:
            tracker.close()


def require_plan(tracker: PlanTracker) -> None:
    """Exit with a hint when the user has no loaded plan."""
    if tracker.active_plan_id is None:
        views.print_error("No plan yet.")
        views.print_info("Run 'new' to create your first plan.")
        raise typer.Exit(1)
    if tracker.plan is None or tracker.tracking is None:
        views.print_error(f"Plan not found: {tracker.active_plan_id}")
        raise typer.Exit(1)
