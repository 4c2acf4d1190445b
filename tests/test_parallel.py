from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import List

import allure
import pytest

from workflowo.errors import LocalIOError, ParallelTaskError
from workflowo.model import ParallelTask, Task
from workflowo.pool import default_threads, run_parallel

pytestmark = [
    allure.epic("Execution"),
    allure.feature("Parallel Groups"),
]


@dataclass
class GaugedTask(Task):
    """Tracks how many gauged tasks are inside `execute` at once."""
    name: str
    gauge: dict
    log: List[str]
    lock: threading.Lock = field(repr=False)

    def execute(self) -> None:
        with self.lock:
            self.gauge["now"] += 1
            self.gauge["max"] = max(self.gauge["max"], self.gauge["now"])
        time.sleep(0.02)
        with self.lock:
            self.gauge["now"] -= 1
            self.log.append(self.name)


def test_default_threads_is_positive() -> None:
    assert default_threads() >= 1


def test_every_task_runs_exactly_once(recording_task) -> None:
    log: List[str] = []
    lock = threading.Lock()
    tasks = [recording_task(str(i), log, lock=lock) for i in range(10)]

    run_parallel(tasks, threads=3)

    assert sorted(log, key=int) == [str(i) for i in range(10)]


def test_concurrency_never_exceeds_threads() -> None:
    gauge = {"now": 0, "max": 0}
    log: List[str] = []
    lock = threading.Lock()
    tasks = [GaugedTask(str(i), gauge, log, lock) for i in range(9)]

    ParallelTask(tasks, threads=3).execute()

    assert len(log) == 9
    assert 1 <= gauge["max"] <= 3


def test_failure_returns_without_waiting_for_stragglers(recording_task) -> None:
    log: List[str] = []
    release = threading.Event()
    slow = recording_task("slow", log, release=release)
    broken = recording_task("broken", log, fail=True)

    started = time.monotonic()
    try:
        with pytest.raises(ParallelTaskError) as info:
            run_parallel([slow, broken], threads=2)
        elapsed = time.monotonic() - started
    finally:
        release.set()

    assert elapsed < 1
    assert info.value.index == 1
    assert info.value.total == 2
    assert info.value.pending == [0]
    assert isinstance(info.value.__cause__, LocalIOError)


def test_single_thread_runs_in_submission_order(recording_task) -> None:
    log: List[str] = []
    tasks = [recording_task(n, log) for n in "abcd"]

    run_parallel(tasks, threads=1)

    assert log == ["a", "b", "c", "d"]
