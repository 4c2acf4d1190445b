# runner.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from .document import load_document
from .errors import NotFoundError, ParseError, ResolveError, WorkflowError
from .model import Job
from .parser import parse_jobs
from .resolver import PromptReader, Resolver
from .ui.console import get_console


# ----------------------------------------------------------------------
# Workflow loading (local YAML file)
# ----------------------------------------------------------------------

def load_jobs(
    path: str | Path,
    *,
    read_line: Optional[PromptReader] = None,
    read_hidden: Optional[PromptReader] = None,
) -> List[Job]:
    """
    Load a workflow document and build its jobs.

    Steps:
      1. read the YAML file into the generic value tree
      2. resolve every tagged value (prompts the operator for !Input)
      3. parse the resolved tree into jobs

    Resolution finishes completely before any job is parsed or run.
    """
    wf_path = Path(path).expanduser()
    document = load_document(wf_path)

    try:
        resolved = Resolver(read_line=read_line, read_hidden=read_hidden).resolve(document)
    except WorkflowError as e:
        raise ResolveError(f"resolving yaml error in {wf_path}") from e

    try:
        return parse_jobs(resolved)
    except WorkflowError as e:
        raise ParseError(f"failed to parse jobs in file {wf_path}") from e


def find_job(jobs: List[Job], name: str) -> Job:
    for job in jobs:
        if job.name == name:
            return job
    known = ", ".join(job.name for job in jobs) or "none"
    raise NotFoundError(f"Job {name} not found. Known jobs: {known}")


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def run_job(jobs: List[Job], name: str) -> None:
    """Run the job called `name`. Raises the job's error chain on failure."""
    console = get_console()
    job = find_job(jobs, name)
    console.print_job_started(job.name, len(job.tasks))
    job.execute()
    console.print_success(job.name)
