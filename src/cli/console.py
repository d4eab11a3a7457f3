"""Rich console output helpers for tracing runs."""

import numpy as np
from rich.console import Console
from rich.table import Table

console = Console()


def ok(msg: str):
    """Print success message."""
    console.print(f"  [green]✓[/green] {msg}")


def fail(msg: str):
    """Print failure message."""
    console.print(f"  [red]✗[/red] {msg}")


def dim(msg: str):
    """Print dimmed message."""
    console.print(f"  [dim]{msg}[/dim]")


def header(msg: str):
    """Print bold header."""
    console.print(f"\n[bold]{msg}[/bold]")


def trajectory_table(trajectories, max_rows: int = 10) -> Table:
    """Table with start, end, length and arc length of the first trajectories."""
    table = Table(title=f"{len(trajectories)} trajectories", show_lines=False)
    table.add_column("#", justify="right", style="cyan")
    table.add_column("start")
    table.add_column("end")
    table.add_column("points", justify="right")
    table.add_column("arc length", justify="right")

    for index, trajectory in enumerate(trajectories):
        if index >= max_rows:
            table.add_row("…", "", "", "", "")
            break
        table.add_row(
            str(index),
            np.array2string(trajectory.start, precision=3),
            np.array2string(trajectory.end, precision=3),
            str(len(trajectory)),
            f"{trajectory.arc_length():.4f}",
        )
    return table


def print_trace_summary(trajectories, metrics: dict):
    """Print the trajectory table followed by summary metrics."""
    console.print(trajectory_table(trajectories))
    for name, value in metrics.items():
        dim(f"{name}: {value:.4g}" if isinstance(value, float) else f"{name}: {value}")
