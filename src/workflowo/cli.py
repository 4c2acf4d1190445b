# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from workflowo import settings
from workflowo.document import load_document
from workflowo.errors import WorkflowError
from workflowo.runner import find_job, load_jobs, run_job
from workflowo.ui.console import Console, get_console, set_console


def validate_workflow_file(ctx, param, value: Path) -> Path:
    """The workflow must be an existing file with a .yml or .yaml extension."""
    if value.suffix.lower() not in settings.YAML_SUFFIXES:
        raise click.BadParameter(f"{value} is not a yaml file!")
    return value


workflow_file = click.argument(
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    callback=validate_workflow_file,
)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and trace every task)",
)
@click.pass_context
def cli(ctx, debug):
    """workflowo: run jobs declared in a YAML workflow file."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@workflow_file
@click.argument("job")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Print the resolved job tree before running")
def run(file, job, verbose):
    """Run JOB from the workflow FILE."""
    console = get_console()

    try:
        jobs = load_jobs(file)
    except WorkflowError as e:
        console.print_error_chain(f"Could not load workflow {file}", e)
        sys.exit(1)

    try:
        selected = find_job(jobs, job)
    except WorkflowError as e:
        console.print_error_chain("Job not found", e)
        sys.exit(1)

    if verbose:
        console.print_header(f"Job tree: {selected.name}")
        console.print_job_tree(selected)
        console.print_info("")

    try:
        run_job(jobs, job)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except WorkflowError as e:
        console.print_error_chain(f"Job {job} failed", e)
        sys.exit(1)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command("list")
@workflow_file
def list_jobs(file):
    """List the jobs of a workflow FILE without resolving it (no prompts)."""
    console = get_console()
    try:
        document = load_document(file)
    except WorkflowError as e:
        console.print_error_chain(f"Could not load workflow {file}", e)
        sys.exit(1)

    if not isinstance(document, dict):
        console.print_error("Invalid workflow", f"{file} does not contain a mapping of jobs")
        sys.exit(1)

    names = [str(name) for name in document if name != settings.IGNORE_KEY]
    if not names:
        console.print_info("No jobs defined.")
        return
    console.print_info("Jobs:")
    for name in names:
        console.print_info(f"- {name}")


def main():  # pragma: no cover
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
