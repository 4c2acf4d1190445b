"""Console output formatting utilities for workflowo."""

from __future__ import annotations

import sys
import traceback
from typing import TYPE_CHECKING, Optional

from ..errors import iter_chain

if TYPE_CHECKING:
    from ..model import Task


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
                   and a trace line for every task as it starts
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_job_started(self, name: str, task_count: int) -> None:
        """Print job start message."""
        print(f"Executing Job {name} ({task_count} task(s))")

    def print_job_tree(self, task: Task, depth: int = 0) -> None:
        """Print a task and everything below it, one task per line."""
        print(f"{'  ' * depth}{task.describe()}")
        for child in task.children:
            self.print_job_tree(child, depth + 1)

    def print_task(self, owner: str, index: int, task: Task) -> None:
        """Trace a task as it starts (debug only)."""
        self.print_debug(f"[{owner}] #{index} {task.describe()}")

    def print_success(self, name: str) -> None:
        """Print success message."""
        print(f"Job {name}: SUCCESS")

    def print_error(self, title: str, message: str) -> None:
        """Print a one-off error that has no cause chain."""
        print(f"\nERROR: {title}", file=sys.stderr)
        print(message, file=sys.stderr)

    def print_error_chain(self, title: str, exc: BaseException) -> None:
        """
        Print an error and every cause behind it, each cause indented one
        level deeper than the context that wrapped it.
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        for depth, link in enumerate(iter_chain(exc)):
            indent = "  " * depth
            kind = getattr(link, "kind", type(link).__name__)
            prefix = "Caused by " if depth else ""
            lines = str(link).splitlines() or [""]
            print(f"{indent}{prefix}{kind}: {lines[0]}", file=sys.stderr)
            for line in lines[1:]:
                print(f"{indent}  {line}", file=sys.stderr)
        if self.debug:
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Unexpected (non-workflow) errors; full traceback in debug mode."""
        if self.debug:
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        else:
            print(f"Unexpected error: {type(exc).__name__}: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        print(message)

    def print_debug(self, message: str) -> None:
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# installed by the CLI; library callers get a quiet default
_console: Optional[Console] = None


def get_console() -> Console:
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    global _console
    _console = console
