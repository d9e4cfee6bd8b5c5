# project.py
"""
The pieces of a project the build workflow talks to.

These stand in for the surrounding project model: how a named task becomes
a shell command, and the source-control host the workflow is published to.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from . import settings


@dataclass(frozen=True)
class Task:
    """A named build task, e.g. `build` -> `npx projen build`."""
    name: str
    description: str | None = None


@dataclass
class GitHub:
    """Workflow hosting for a project."""
    token_secret: str = settings.TOKEN_SECRET
    auto_approve_label: Optional[str] = None
    workflow_dir: str = settings.WORKFLOW_DIR


@dataclass
class Project:
    """
    A project that owns tasks and, optionally, a GitHub collaborator.

    `task_runner` is the command prefix used to run a task by name.
    """
    name: str
    github: Optional[GitHub] = None
    task_runner: str = "make"
    tasks: Dict[str, Task] = field(default_factory=dict)

    def add_task(self, name: str, description: str | None = None) -> Task:
        task = Task(name=name, description=description)
        self.tasks[name] = task
        return task

    def run_task_command(self, task: Task) -> str:
        return f"{self.task_runner} {task.name}"
