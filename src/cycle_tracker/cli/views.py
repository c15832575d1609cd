"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of plans, the attendance grid and
cycle summaries.
"""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.ascii_plot import create_cycle_chart
from ..core.config import DONE, MISSED, PARTIAL, UNSET
from ..core.models import ChartData, CycleSummary, GridCell, GridView, Plan

console = Console()

STATUS_SYMBOLS = {
    UNSET: "[dim]·[/dim]",
    DONE: "[green]✔[/green]",
    PARTIAL: "[yellow]◐[/yellow]",
    MISSED: "[magenta]✘[/magenta]",
}


def format_plans_table(plans: list[tuple[str, Plan]], active_plan_id: str | None) -> Table:
    """
    Format the user's plans as a table.

    Args:
        plans: (plan id, plan) pairs in listing order
        active_plan_id: Id of the selected plan, marked with *

    Returns:
        Rich Table
    """
    table = Table(title="Plans", show_header=True, header_style="bold cyan")
    table.add_column("", width=1)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Sessions", justify="right")
    table.add_column("Rest", justify="right")

    for plan_id, plan in plans:
        rest = sum(1 for a in plan.activities if a.is_rest)
        table.add_row(
            "*" if plan_id == active_plan_id else "",
            plan_id,
            escape(plan.name),
            str(plan.sessions),
            str(rest),
        )
    return table


def format_plan_table(plan: Plan) -> Table:
    """Format one plan's sessions as a table."""
    table = Table(title=escape(plan.name), show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Activity")

    for i, activity in enumerate(plan.activities, 1):
        text = "[dim]rest[/dim]" if activity.is_rest else escape(activity.text) or "[dim](empty)[/dim]"
        table.add_row(str(i), text)
    return table


def _cell_markup(cell: GridCell) -> str:
    if cell.is_rest:
        return "[dim]-[/dim]"
    symbol = STATUS_SYMBOLS.get(cell.status, "?")
    if cell.historical_diff:
        symbol += "[dim]*[/dim]"
    if cell.upcoming:
        symbol = f"[dim]{symbol}[/dim]"
    return symbol


def format_grid_table(view: GridView) -> Table:
    """
    Format the attendance grid.

    The current cycle column is highlighted, later columns are dimmed and a
    trailing * marks past cells tracked against a different activity.
    """
    table = Table(title=f"{escape(view.plan.name)}: attendance", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Activity")
    for c in range(view.columns):
        style = "bold magenta" if c == view.current_cycle_index else "dim"
        table.add_column(f"[{style}]C{c + 1}[/{style}]", justify="center")

    for s, (activity, cells) in enumerate(zip(view.plan.activities, view.rows), 1):
        label = "[dim strike]rest[/dim strike]" if activity.is_rest else escape(activity.text)
        table.add_row(str(s), label, *(_cell_markup(cell) for cell in cells))
    return table


def format_summary_table(summaries: list[CycleSummary]) -> Table:
    """Format per-cycle counts."""
    table = Table(title="Cycle Summary", show_header=True, header_style="bold cyan")
    table.add_column("Cycle", justify="right")
    table.add_column("Done", justify="right", style="green")
    table.add_column("Partial", justify="right", style="yellow")
    table.add_column("Missed", justify="right", style="magenta")

    for i, s in enumerate(summaries, 1):
        table.add_row(str(i), str(s.done), str(s.partial), str(s.missed))
    return table


def print_grid(view: GridView) -> None:
    """Print the attendance grid with a legend."""
    console.print(format_grid_table(view))
    console.print(
        f"Current cycle: [bold]{view.current_cycle_index + 1}[/bold]   "
        "✔ done  ◐ partial  ✘ missed  · unset  - rest  * plan changed since"
    )


def print_summary(summaries: list[CycleSummary], chart: ChartData) -> None:
    """Print the summary table followed by the ASCII chart."""
    if not summaries:
        console.print("[yellow]Nothing to summarize yet.[/yellow]")
        return
    console.print(format_summary_table(summaries))
    console.print()
    console.print(create_cycle_chart(summaries, chart), markup=False, highlight=False)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} \\[y/N]: ").strip().lower()
    return response in ("y", "yes")
