"""
ASCII rendering of the cycle summary chart.

Draws one column per cycle: done and partial stacked above the axis,
missed hanging below it. Band heights come from summary.build_chart().
"""

from .models import ChartData, CycleSummary

DONE_CHAR = "█"
PARTIAL_CHAR = "▒"
MISSED_CHAR = "░"
COLUMN_WIDTH = 4


def _scale(height: float, band_height: float, band_lines: int) -> int:
    if band_height <= 0:
        return 0
    return round(height / band_height * band_lines)


def create_cycle_chart(
    summaries: list[CycleSummary],
    chart: ChartData,
    lines: int = 12,
) -> str:
    """
    Create an ASCII stacked bar chart of cycle attendance.

    Args:
        summaries: Per-cycle counts (used for the value row)
        chart: Scaled chart data for the same summaries
        lines: Total number of bar lines (positive + negative band)

    Returns:
        ASCII art string
    """
    if not summaries:
        return "No cycles to summarize yet."

    total = chart.positive_height + chart.negative_height
    positive_lines = max(1, round(lines * chart.positive_height / total))
    negative_lines = max(1, lines - positive_lines)

    columns: list[list[str]] = []
    for bar in chart.bars:
        done = _scale(bar.done_height, chart.positive_height, positive_lines)
        partial = _scale(bar.partial_height, chart.positive_height, positive_lines)
        partial = min(partial, positive_lines - done)
        missed = _scale(bar.missed_height, chart.negative_height, negative_lines)

        # Top to bottom: empty, partial, done | axis | missed, empty
        cells = [" "] * (positive_lines - done - partial)
        cells += [PARTIAL_CHAR] * partial
        cells += [DONE_CHAR] * done
        cells += [MISSED_CHAR] * missed
        cells += [" "] * (negative_lines - missed)
        columns.append(cells)

    width = COLUMN_WIDTH * len(columns)
    out: list[str] = []
    for line_idx in range(positive_lines + negative_lines):
        if line_idx == positive_lines:
            out.append("─" * width)
        row = "".join(f" {col[line_idx] * (COLUMN_WIDTH - 2)} " for col in columns)
        out.append(row.rstrip())

    out.append("".join(f"{'C' + str(i + 1):^{COLUMN_WIDTH}}" for i in range(len(columns))))
    out.append("")
    out.append(f"{DONE_CHAR} done   {PARTIAL_CHAR} partial   {MISSED_CHAR} missed")
    return "\n".join(out)
