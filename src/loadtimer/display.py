"""Console rendering of CPU metrics."""

import math
from collections.abc import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from loadtimer.stats import ProcMetrics

COLUMNS = [
    "CPU %",
    "CPU % stddev",
    "total mean",
    "total stddev",
    "utime mean",
    "stime mean",
]


def format_value(value: float) -> str:
    """Format a metric with two decimals, or "-" if it is undefined."""
    if math.isnan(value):
        return "-"
    return f"{value:.2f}"


def metric_cells(metric: ProcMetrics) -> list[str]:
    """Get the formatted numeric cells of one table row."""
    return [
        format_value(metric.cpu_usage.mean),
        format_value(metric.cpu_usage.stddev),
        format_value(metric.total.mean),
        format_value(metric.total.stddev),
        format_value(metric.user.mean),
        format_value(metric.system.mean),
    ]


def build_table(metrics: Sequence[ProcMetrics]) -> Table:
    """Build the metrics table, one row per process or thread."""
    table = Table(show_edge=True, header_style="bold")
    table.add_column("Process", justify="left", no_wrap=True)
    for column in COLUMNS:
        table.add_column(column, justify="right")
    for metric in metrics:
        table.add_row(Text(metric.name), *metric_cells(metric))
    return table


def print_metrics(console: Console, metrics: Sequence[ProcMetrics]) -> int:
    """Print the metrics table and return the number of lines it took."""
    table = build_table(metrics)
    lines = console.render_lines(table, pad=False, new_lines=False)
    console.print(table)
    return len(lines)


def clear_lines(console: Console, count: int) -> None:
    """Move the cursor up ``count`` lines and erase everything below it."""
    if count <= 0 or not console.is_terminal:
        return
    console.file.write(f"\x1b[{count}F\x1b[J")
    console.file.flush()
