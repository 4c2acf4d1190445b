# model.py
from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from .errors import JobError
from .pool import default_threads, run_parallel
from .ui.console import get_console


class Task(ABC):
    """
    Anything a job can run.

    The set of implementors is closed: Job, OSDependent, PrintTask,
    ParallelTask and the shell/remote leaf tasks.
    """

    @abstractmethod
    def execute(self) -> None:
        """Run the task. Raises a WorkflowError on failure."""

    def describe(self) -> str:
        return repr(self)

    @property
    def children(self) -> List[Task]:
        return []

    def __str__(self) -> str:
        return self.describe()


def run_sequence(name: str, tasks: Sequence[Task]) -> None:
    """Run tasks in order; the first failure aborts the rest."""
    console = get_console()
    for idx, task in enumerate(tasks):
        console.print_task(name, idx, task)
        try:
            task.execute()
        except Exception as e:
            raise JobError(job=name, index=idx, task=task.describe()) from e


@dataclass
class Job(Task):
    """A named, ordered sequence of tasks. Jobs nest as tasks."""
    name: str
    tasks: List[Task] = field(default_factory=list)

    @property
    def children(self) -> List[Task]:
        return self.tasks

    def execute(self) -> None:
        run_sequence(self.name, self.tasks)

    def describe(self) -> str:
        return f"Job {self.name!r}"


class OS(Enum):
    WINDOWS = "windows"
    LINUX = "linux"


def current_os() -> Optional[OS]:
    if sys.platform.startswith("win"):
        return OS.WINDOWS
    if sys.platform.startswith("linux"):
        return OS.LINUX
    return None


@dataclass
class OSDependent(Task):
    """Runs its tasks only when the host OS matches; otherwise a silent no-op."""
    os: OS
    tasks: List[Task] = field(default_factory=list)

    @property
    def children(self) -> List[Task]:
        return self.tasks

    def execute(self) -> None:
        if current_os() is not self.os:
            get_console().print_debug(f"skipping on-{self.os.value} branch")
            return
        run_sequence(f"on-{self.os.value}", self.tasks)

    def describe(self) -> str:
        return f"OSDependent {self.os.value!r}"


@dataclass
class PrintTask(Task):
    prompt: str

    def execute(self) -> None:
        print(self.prompt, flush=True)


@dataclass
class ParallelTask(Task):
    tasks: List[Task]
    threads: int = field(default_factory=default_threads)

    @property
    def children(self) -> List[Task]:
        return self.tasks

    def execute(self) -> None:
        run_parallel(self.tasks, self.threads)

    def describe(self) -> str:
        return f"ParallelTask (threads={self.threads}, tasks={len(self.tasks)})"
