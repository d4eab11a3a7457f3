"""Console helpers for the tracing runner."""

from .console import console, dim, fail, header, ok, print_trace_summary, trajectory_table

__all__ = [
    "console",
    "ok",
    "fail",
    "dim",
    "header",
    "trajectory_table",
    "print_trace_summary",
]
