# cli.py
from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import click

from . import settings
from .build import BuildWorkflow
from .errors import ConstructionError
from .git_facts.git import changed_files
from .loader import DEFAULT_WORKFLOW_FILE, find_workflow_files, load_workflow
from .planner import RunFacts, simulate
from .synth import to_yaml, write_workflow
from .ui.console import Console, get_console, set_console


def discover_workflow(workflow_arg: str | None) -> Path:
    """
    Discover workflow file from argument or default.

    Raises:
        SystemExit: If workflow cannot be found or multiple workflows exist
    """
    console = get_console()

    if workflow_arg:
        workflow_path = Path(workflow_arg)
        if not workflow_path.exists() and workflow_path.suffix != ".py":
            workflow_path = Path(str(workflow_path) + ".py")
        if not workflow_path.exists():
            console.print_error(
                "Workflow file not found",
                f"Could not find workflow file: {workflow_arg}",
                suggestion="Create a workflow file or specify a different path:\n  guardci synth --workflow my_workflow.py",
            )
            sys.exit(1)
        return workflow_path

    workflow_files = find_workflow_files()

    if len(workflow_files) == 0:
        console.print_error(
            "No workflow file found",
            "Could not find any workflow files.",
            details=[
                "Looked for:",
                f"  {DEFAULT_WORKFLOW_FILE}",
                "  *_workflow.py",
            ],
            suggestion=f"Create a workflow file:\n  {DEFAULT_WORKFLOW_FILE}",
        )
        sys.exit(1)

    if len(workflow_files) > 1:
        file_list = "\n".join(f"  {f}" for f in workflow_files)
        console.print_error(
            "Multiple workflow files found",
            "Found multiple workflow files. Please specify which one to use:",
            details=[file_list],
            suggestion=f"Specify a workflow explicitly:\n  guardci synth --workflow {DEFAULT_WORKFLOW_FILE}",
        )
        sys.exit(1)

    return workflow_files[0]


def _load(ctx: click.Context, workflow_arg: str | None) -> tuple[Path, BuildWorkflow]:
    console = get_console()
    workflow_path = discover_workflow(workflow_arg)
    try:
        workflow = load_workflow(workflow_path)
        workflow.finalize()
    except ConstructionError as e:
        console.print_error(
            "Invalid workflow",
            f"Could not build the workflow graph from {workflow_path}",
            details=str(e).splitlines(),
        )
        console.print_exception(e)
        sys.exit(1)
    except Exception as e:
        console.print_error(
            "Failed to load workflow",
            f"Could not load workflow from {workflow_path}",
            details=[str(e)],
        )
        console.print_exception(e)
        sys.exit(1)
    return workflow_path, workflow


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """guardci — build workflows that catch or fix drift."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--workflow", default=None, help=f"Workflow file path (defaults to {DEFAULT_WORKFLOW_FILE} if present)")
@click.option("--out", "out_dir", default=None, help="Output directory (defaults to the project's workflow dir)")
@click.option("--stdout", "to_stdout", is_flag=True, default=False, help="Print the workflow instead of writing it")
@click.pass_context
def synth(ctx, workflow, out_dir, to_stdout):
    """Render the build workflow file."""
    console = get_console()
    _path, wf = _load(ctx, workflow)

    if to_stdout:
        click.echo(to_yaml(wf.graph), nl=False)
        return

    target = out_dir or wf.github.workflow_dir or settings.WORKFLOW_DIR
    path = write_workflow(wf.graph, target)
    console.print_written(str(path))


@cli.command()
@click.option("--workflow", default=None, help=f"Workflow file path (defaults to {DEFAULT_WORKFLOW_FILE} if present)")
@click.pass_context
def graph(ctx, workflow):
    """Print the job graph stage by stage."""
    console = get_console()
    workflow_path, wf = _load(ctx, workflow)

    console.print_workflow_loaded(wf.graph.name, workflow_path.name, len(wf.graph.jobs))
    for idx, stage in enumerate(wf.graph.stages(), start=1):
        console.print_stage(idx, stage)
        for job_id in stage:
            job = wf.graph.job(job_id)
            condition = job.condition.template() if job.condition is not None else None
            console.print_job(job_id, job.needs, condition)
    console.print_info(f"\nBuild jobs: {', '.join(wf.build_job_ids)}")


@cli.command()
@click.option("--workflow", default=None, help=f"Workflow file path (defaults to {DEFAULT_WORKFLOW_FILE} if present)")
@click.option("--diff/--no-diff", default=False, show_default=True, help="The build leaves changes behind")
@click.option("--fork/--no-fork", default=False, show_default=True, help="The change comes from a fork")
@click.option("--label", "labels", multiple=True, help="Label on the triggering change (repeatable)")
@click.option("--build-fails", is_flag=True, default=False, help="The build task fails")
@click.option("--push-rejected", is_flag=True, default=False, help="The self-mutation push is rejected")
@click.pass_context
def plan(ctx, workflow, diff, fork, labels, build_fails, push_rejected):
    """Replay a run offline and show which jobs would run."""
    console = get_console()
    _path, wf = _load(ctx, workflow)

    facts = RunFacts(
        diff_exists=diff,
        is_fork=fork,
        labels=frozenset(labels),
        build_succeeds=not build_fails,
        push_rejected=push_rejected,
    )
    console.print_debug(f"facts: {facts}")
    run = simulate(wf.graph, facts)
    console.print_results(run.results)

    if run.failed:
        sys.exit(1)


@cli.command()
@click.option("--repo-dir", default=".", help="Repository to check")
@click.pass_context
def check(ctx, repo_dir):
    """Fail if the working tree differs from the last commit."""
    console = get_console()

    try:
        files = changed_files(cwd=repo_dir)
    except subprocess.CalledProcessError:
        console.print_error(
            "Not a git repository",
            f"Could not read git status in {repo_dir}",
            suggestion="Run the check from inside a git checkout or pass --repo-dir.",
        )
        sys.exit(1)
    except FileNotFoundError:
        console.print_error(
            "Git command not found",
            "Could not find git command.",
            suggestion="Install Git and make sure it is on PATH.",
        )
        sys.exit(1)

    if files:
        console.print_drift(files)
        sys.exit(1)
    console.print_info("No drift.")


if __name__ == "__main__":
    cli()
