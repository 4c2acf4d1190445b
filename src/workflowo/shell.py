# shell.py
from __future__ import annotations

import subprocess
from abc import abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from . import settings
from .errors import LocalIOError, ShellCommandError
from .model import Task
from .ui.console import get_console


@dataclass
class ShellCommand(Task):
    """
    A local process. `args` is the command split on single spaces
    (no quoting support); `allowed_exit_codes=None` means only 0 succeeds.
    """
    args: List[str]
    work_dir: Optional[str] = None
    allowed_exit_codes: Optional[List[int]] = None

    @abstractmethod
    def argv(self) -> List[str]:
        """The interpreter invocation for `args`."""

    def is_allowed(self, exit_code: int) -> bool:
        if self.allowed_exit_codes is None:
            return exit_code == 0
        return exit_code in self.allowed_exit_codes

    def execute(self) -> None:
        argv = self.argv()
        get_console().print_debug(f"spawn {argv} (cwd={self.work_dir or '.'})")

        try:
            proc = subprocess.run(
                argv,
                cwd=self.work_dir,
                text=True,
                capture_output=True,
            )
        except OSError as e:
            raise LocalIOError(f"Failed while executing {argv[0]} command {self.args!r}") from e

        if not self.is_allowed(proc.returncode):
            raise ShellCommandError(
                command=self.args,
                exit_code=proc.returncode,
                allowed_exit_codes=self.allowed_exit_codes or [0],
                stderr=proc.stderr[-settings.STDERR_TAIL:],
            )


@dataclass
class Bash(ShellCommand):
    def argv(self) -> List[str]:
        return ["bash", "-c", " ".join(self.args)]


@dataclass
class Cmd(ShellCommand):
    def argv(self) -> List[str]:
        return ["cmd", "/c", *self.args]
