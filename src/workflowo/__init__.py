from .errors import WorkflowError
from .model import Job, OS, OSDependent, ParallelTask, PrintTask, Task
from .parser import parse_jobs
from .remote import (
    RemoteTarget,
    ScpFileDownload,
    ScpFileUpload,
    SftpDownload,
    SftpUpload,
    SshCommand,
    SshTask,
)
from .resolver import Resolver, resolve_document
from .runner import find_job, load_jobs, run_job
from .shell import Bash, Cmd

__all__ = [
    "WorkflowError",
    "Job", "OS", "OSDependent", "ParallelTask", "PrintTask", "Task",
    "Bash", "Cmd",
    "RemoteTarget", "SshCommand", "SshTask",
    "ScpFileDownload", "ScpFileUpload", "SftpDownload", "SftpUpload",
    "Resolver", "resolve_document", "parse_jobs",
    "load_jobs", "find_job", "run_job",
]
