# parser.py
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from . import settings
from .errors import (
    EmptyGroupError,
    JobCycleError,
    MissingFieldError,
    NotFoundError,
    ParseError,
    ShapeError,
    UnknownTaskError,
    ValueTypeError,
    WorkflowError,
)
from .model import OS, Job, OSDependent, ParallelTask, PrintTask, Task
from .pool import default_threads
from .remote import (
    RemoteTarget,
    RemoteTransfer,
    ScpFileDownload,
    ScpFileUpload,
    SftpDownload,
    SftpUpload,
    SshCommand,
    SshTask,
)
from .shell import Bash, Cmd, ShellCommand


# ----------------------------------------------------------------------
# Field accessors
# ----------------------------------------------------------------------

def _require_mapping(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ShapeError(f"{what} is not of type Mapping")
    return value


def _require_sequence(value: Any, what: str) -> list:
    if not isinstance(value, list):
        raise ShapeError(f"{what} is not a sequence")
    return value


def _get_str(mapping: dict, key: str, required: bool = True) -> Optional[str]:
    if key not in mapping:
        if required:
            raise MissingFieldError(f"{key} is not given")
        return None
    value = mapping[key]
    if not isinstance(value, str):
        raise ValueTypeError(f"{key} is not a string")
    return value


def _get_int(mapping: dict, key: str) -> Optional[int]:
    if key not in mapping:
        return None
    value = mapping[key]
    # bool is an int subclass, but `threads: true` is a typo, not a number
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueTypeError(f"{key} is not a valid number")
    return value


def _get_exit_codes(mapping: dict) -> Optional[List[int]]:
    if "exit_codes" not in mapping:
        return None
    codes = _require_sequence(mapping["exit_codes"], "exit_codes")
    if not codes:
        raise ShapeError("no exit codes are provided")
    for code in codes:
        if isinstance(code, bool) or not isinstance(code, int):
            raise ValueTypeError(f"exit code {code!r} is not a number")
    return list(codes)


# ----------------------------------------------------------------------
# Jobs
# ----------------------------------------------------------------------

class TaskParser:
    """
    Builds the typed task tree from a resolved document.

    Bare strings inside a task sequence are references to other jobs of the
    same document; they are expanded here, at parse time, into independent
    nested Job nodes.
    """

    def __init__(self, root: dict):
        self.root = _require_mapping(root, "Document root")
        self._stack: List[str] = []
        self._kinds: Dict[str, Callable[[Any], Task]] = {
            "bash": lambda v: parse_shell_command(Bash, v),
            "cmd": lambda v: parse_shell_command(Cmd, v),
            "on-windows": lambda v: self.parse_os_dependent(OS.WINDOWS, v),
            "on-linux": lambda v: self.parse_os_dependent(OS.LINUX, v),
            "ssh": parse_ssh,
            "scp-download": lambda v: parse_remote_transfer(ScpFileDownload, v),
            "scp-upload": lambda v: parse_remote_transfer(ScpFileUpload, v),
            "sftp-download": lambda v: parse_remote_transfer(SftpDownload, v),
            "sftp-upload": lambda v: parse_remote_transfer(SftpUpload, v),
            "print": parse_print,
            "parallel": self.parse_parallel,
        }

    def parse_jobs(self) -> List[Job]:
        jobs: List[Job] = []
        for name in self.root:
            if not isinstance(name, str):
                raise ShapeError(f"Job {name!r} has not a valid string as name")
            if name == settings.IGNORE_KEY:
                continue
            jobs.append(self.parse_job(name))
        return jobs

    def parse_job(self, name: str) -> Job:
        if name in self._stack:
            raise JobCycleError(self._stack[self._stack.index(name):] + [name])
        if name not in self.root:
            raise NotFoundError(f"Job {name} not found")

        self._stack.append(name)
        try:
            body = _require_sequence(self.root[name], f"Child of {name}")
            return Job(name=name, tasks=self.parse_tasks(name, body))
        except WorkflowError as e:
            raise ParseError(f"Error while parsing job {name}") from e
        finally:
            self._stack.pop()

    def parse_tasks(self, owner: str, values: list) -> List[Task]:
        tasks = []
        for idx, value in enumerate(values):
            try:
                tasks.append(self.parse_task(value))
            except WorkflowError as e:
                raise ParseError(f"{owner}: task {idx} could not be parsed") from e
        return tasks

    def parse_task(self, value: Any) -> Task:
        if isinstance(value, str):
            return self.parse_job(value)

        kind, config = _task_entry(value)
        builder = self._kinds.get(kind)
        if builder is None:
            raise UnknownTaskError(f"unrecognized task {kind}")
        try:
            return builder(config)
        except WorkflowError as e:
            raise ParseError(f"parsing error with {kind} task") from e

    def parse_os_dependent(self, os: OS, value: Any) -> OSDependent:
        body = _require_sequence(value, f"on-{os.value}")
        return OSDependent(os=os, tasks=self.parse_tasks(f"on-{os.value}", body))

    def parse_parallel(self, value: Any) -> ParallelTask:
        threads = default_threads()
        if isinstance(value, list):
            task_seq = value
        elif isinstance(value, dict):
            configured = _get_int(value, "threads")
            if configured is not None:
                if configured < 1:
                    raise ShapeError("threads value of parallel task must be at least 1")
                threads = configured
            if "tasks" not in value:
                raise MissingFieldError("tasks was not provided to parallel task")
            task_seq = _require_sequence(value["tasks"], "tasks of parallel task")
        else:
            raise ShapeError("parallel task needs to be a sequence or mapping but is not")

        if not task_seq:
            raise EmptyGroupError("task sequence has no entries")
        return ParallelTask(tasks=self.parse_tasks("parallel", task_seq), threads=threads)


def _task_entry(value: Any) -> Tuple[str, Any]:
    if not isinstance(value, dict):
        raise ShapeError("Parsing error with task. Task is not of type Mapping!")
    if not value:
        raise ShapeError("task could not be parsed, mapping is empty")
    kind, config = next(iter(value.items()))
    if not isinstance(kind, str):
        raise ShapeError("task has an issue with the name")
    return kind, config


# ----------------------------------------------------------------------
# Leaf tasks
# ----------------------------------------------------------------------

def parse_shell_command(cls: Type[ShellCommand], value: Any) -> ShellCommand:
    # bare string shortcut: `bash: "some command"`
    if isinstance(value, str):
        return cls(args=value.split(" "))

    mapping = _require_mapping(value, "shell task")
    command = _get_str(mapping, "command")
    return cls(
        args=command.split(" "),
        work_dir=_get_str(mapping, "work_dir", required=False),
        allowed_exit_codes=_get_exit_codes(mapping),
    )


def parse_print(value: Any) -> PrintTask:
    if not isinstance(value, str):
        raise ValueTypeError(f"print value is not a string: {value!r}")
    return PrintTask(prompt=value)


def parse_target(mapping: dict) -> RemoteTarget:
    port = _get_int(mapping, "port")
    return RemoteTarget(
        address=_get_str(mapping, "address"),
        username=_get_str(mapping, "username"),
        password=_get_str(mapping, "password"),
        port=settings.SSH_PORT if port is None else port,
    )


def parse_remote_transfer(cls: Type[RemoteTransfer], value: Any) -> RemoteTransfer:
    mapping = _require_mapping(value, "remote transfer")
    return cls(
        target=parse_target(mapping),
        remote_path=_get_str(mapping, "remote_path"),
        local_path=_get_str(mapping, "local_path"),
    )


def parse_ssh(value: Any) -> SshTask:
    mapping = _require_mapping(value, "ssh task")
    target = parse_target(mapping)
    if "commands" not in mapping:
        raise MissingFieldError("commands are not given")
    commands = [
        parse_ssh_command(item)
        for item in _require_sequence(mapping["commands"], "commands")
    ]
    return SshTask(target=target, commands=commands)


def parse_ssh_command(value: Any) -> SshCommand:
    """
    Accepts:
      - "ls -la"                                    (exit code 0 only)
      - {command: "ls", exit_codes: [0, 2]}
      - {command: {command: "ls", exit_codes: [0, 2]}}
    """
    if isinstance(value, str):
        return SshCommand(command=value)

    mapping = _require_mapping(value, "ssh command")
    if isinstance(mapping.get("command"), dict):
        mapping = mapping["command"]

    command = _get_str(mapping, "command")
    exit_codes = _get_exit_codes(mapping)
    if exit_codes is None:
        return SshCommand(command=command)
    return SshCommand(command=command, allowed_exit_codes=exit_codes)


def parse_jobs(document: Any) -> List[Job]:
    """Map a resolved document to its jobs (the IGNORE key is skipped)."""
    return TaskParser(document).parse_jobs()
