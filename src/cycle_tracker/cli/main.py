"""
CLI entry point using Typer.

Provides commands for plan management and attendance tracking:
- plans / new / select / delete: manage your plans
- show / edit: view and change the selected plan
- grid / toggle: record attendance for the current cycle
- next / prev: move between cycles
- summary: per-cycle counts and chart
"""

from typing import Annotated, Optional

import typer

from ..core.engine.config_loader import load_settings
from ..core.logger import setup_logger
from . import views
from .app import app
from .commands import plans, tracking

MENU = {
    "1": (tracking.grid, "Show attendance grid"),
    "2": (plans.show_plan, "Show selected plan"),
    "3": (tracking.summary, "Cycle summary"),
    "4": (tracking.next_cycle, "Next cycle"),
    "5": (tracking.prev_cycle, "Previous cycle"),
    "p": (plans.list_plans, "List plans"),
    "n": (plans.new_plan, "Create a plan"),
    "0": (None, "Quit"),
}


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Log level (default from config: WARNING)"),
    ] = None,
) -> None:
    """
    Cycle attendance tracker. Run without a command for interactive mode.
    """
    settings = load_settings()
    setup_logger(level=log_level or settings["log_level"], log_file=settings["log_file"])

    if ctx.invoked_subcommand is not None:
        return

    views.console.print()
    views.console.print("[bold cyan]cycle-tracker[/bold cyan]: training cycle attendance")
    views.console.print()
    for key, (_, desc) in MENU.items():
        views.console.print(f"  \\[{key}] {desc}")
    views.console.print()

    choice = views.console.input("Choose [1]: ").strip() or "1"
    if choice not in MENU:
        views.print_error(f"Unknown choice: {choice}")
        raise typer.Exit(1)

    command = MENU[choice][0]
    if command is None:
        raise typer.Exit(0)
    ctx.invoke(command)


if __name__ == "__main__":
    app()
