# pool.py
from __future__ import annotations

import os
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Dict, Sequence

from .errors import ParallelTaskError
from .ui.console import get_console

if TYPE_CHECKING:
    from .model import Task


def default_threads() -> int:
    # one core stays with the main thread
    c = os.cpu_count() or 2
    return max(1, c - 1)


def run_parallel(tasks: Sequence[Task], threads: int) -> None:
    """
    Run every task exactly once on a pool of `threads` workers.

    Completions are consumed in whatever order workers finish. On the first
    failure this raises immediately: tasks that are still queued or running
    are not cancelled and not waited for. They finish in the background and
    their results are dropped.
    """
    console = get_console()
    pool = ThreadPoolExecutor(max_workers=max(1, threads), thread_name_prefix="workflowo")
    in_flight: Dict[Future, int] = {}

    try:
        for idx, task in enumerate(tasks):
            in_flight[pool.submit(task.execute)] = idx

        for fut in as_completed(list(in_flight.keys())):
            idx = in_flight.pop(fut)
            exc = fut.exception()
            if exc is not None:
                console.print_debug(
                    f"parallel task {idx} failed, detaching {len(in_flight)} remaining"
                )
                raise ParallelTaskError(
                    index=idx,
                    total=len(tasks),
                    pending=sorted(in_flight.values()),
                ) from exc
            console.print_debug(f"parallel task {idx} done")
    finally:
        pool.shutdown(wait=False)
