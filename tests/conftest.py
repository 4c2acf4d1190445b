"""Shared test fixtures."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Optional

import pytest

from workflowo.errors import LocalIOError
from workflowo.model import Task
from workflowo.ui.console import Console, set_console


@dataclass
class RecordingTask(Task):
    """Appends its name to a shared log; optionally fails or blocks."""
    name: str
    log: List[str]
    fail: bool = False
    release: Optional[threading.Event] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def execute(self) -> None:
        if self.release is not None:
            self.release.wait(timeout=10)
        with self.lock:
            self.log.append(self.name)
        if self.fail:
            raise LocalIOError(f"{self.name} failed")


@pytest.fixture(autouse=True)
def default_console():
    set_console(Console())
    yield
    set_console(Console())


@pytest.fixture()
def recording_task():
    return RecordingTask
