# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Type, TypeVar

E = TypeVar("E", bound=BaseException)


class WorkflowError(Exception):
    """
    Base class for every error raised while loading or running a workflow.

    Each layer wraps the error it received with its own context using
    `raise ... from cause`, so a failure reads as a chain from the outermost
    context (job, task index) down to the original cause.
    """
    kind = "WorkflowError"


# ----------------------------------------------------------------------
# Document / parsing
# ----------------------------------------------------------------------

class ShapeError(WorkflowError):
    """Expected a mapping, sequence or string and got something else."""
    kind = "ShapeError"


class ValueTypeError(ShapeError):
    kind = "TypeError"


class UnknownTagError(WorkflowError):
    kind = "UnknownTagError"


class UnknownTaskError(WorkflowError):
    kind = "UnknownTaskError"


class MissingFieldError(WorkflowError):
    kind = "MissingFieldError"


class EmptyGroupError(WorkflowError):
    kind = "EmptyGroupError"


class JobCycleError(WorkflowError):
    kind = "JobCycleError"

    def __init__(self, chain: List[str]):
        self.chain = list(chain)
        super().__init__(f"Job references form a cycle: {' -> '.join(self.chain)}")


class ResolveError(WorkflowError):
    kind = "ResolveError"


class ParseError(WorkflowError):
    kind = "ParseError"


# ----------------------------------------------------------------------
# Pre-conditions / local IO
# ----------------------------------------------------------------------

class NotFoundError(WorkflowError):
    kind = "NotFoundError"


class AlreadyExistsError(WorkflowError):
    kind = "AlreadyExistsError"


class LocalIOError(WorkflowError):
    kind = "LocalIOError"


# ----------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------

@dataclass(eq=False)
class ShellCommandError(WorkflowError):
    command: List[str]
    exit_code: int
    allowed_exit_codes: List[int]
    stderr: str = ""

    kind = "ShellCommandError"

    def __str__(self) -> str:
        text = (
            f"{self.command!r} did not succeed (exit={self.exit_code}, "
            f"allowed={self.allowed_exit_codes})"
        )
        if self.stderr:
            text += f"\n{self.stderr.rstrip()}"
        return text


class RemoteConnectError(WorkflowError):
    kind = "RemoteConnectError"


@dataclass(eq=False)
class RemoteCommandError(WorkflowError):
    command: str
    exit_code: int
    output: str = ""

    kind = "RemoteCommandError"

    def __str__(self) -> str:
        return (
            f"Something went wrong while executing a command (`{self.command}`). "
            f"Exit code {self.exit_code}."
        )


class RemoteChannelError(WorkflowError):
    kind = "RemoteChannelError"


@dataclass(eq=False)
class JobError(WorkflowError):
    job: str
    index: int
    task: Optional[str] = None

    kind = "JobError"

    def __str__(self) -> str:
        return f"Job '{self.job}' failed at task {self.index}"


@dataclass(eq=False)
class ParallelTaskError(WorkflowError):
    index: int
    total: int
    pending: List[int] = field(default_factory=list)

    kind = "ParallelTaskError"

    def __str__(self) -> str:
        text = f"Parallel task {self.index} of {self.total} failed"
        if self.pending:
            text += f" (detached without waiting: {self.pending})"
        return text


# ----------------------------------------------------------------------
# Chain helpers
# ----------------------------------------------------------------------

def iter_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield `exc` and every cause behind it, outermost first."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def find_cause(exc: BaseException, kind: Type[E]) -> Optional[E]:
    for link in iter_chain(exc):
        if isinstance(link, kind):
            return link
    return None


def root_cause(exc: BaseException) -> BaseException:
    last = exc
    for link in iter_chain(exc):
        last = link
    return last
