# loader.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import List

from .build import BuildWorkflow


DEFAULT_WORKFLOW_FILE = "guardci_workflow.py"


def find_workflow_files(directory: str | Path = ".") -> List[Path]:
    """guardci_workflow.py first, then any other *_workflow.py."""
    current_dir = Path(directory)
    workflow_files = []

    default_workflow = current_dir / DEFAULT_WORKFLOW_FILE
    if default_workflow.exists():
        workflow_files.append(default_workflow)

    for path in sorted(current_dir.glob("*_workflow.py")):
        if path != default_workflow:
            workflow_files.append(path)

    return workflow_files


def load_workflow(path: str | Path) -> BuildWorkflow:
    """
    Load a build workflow from a python file path.

    The file must define either:
      - workflow() -> BuildWorkflow
      - WORKFLOW = BuildWorkflow(...)
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise FileNotFoundError(f"Workflow file not found: {wf_path}")
    if wf_path.suffix != ".py":
        raise ValueError(f"Workflow must be a .py file, got: {wf_path.name}")

    module_name = f"guardci_workflow_{wf_path.stem}"
    globals_dict = runpy.run_path(str(wf_path), run_name=module_name)

    workflow = None
    if "workflow" in globals_dict and callable(globals_dict["workflow"]):
        workflow = globals_dict["workflow"]()
    elif "WORKFLOW" in globals_dict:
        workflow = globals_dict["WORKFLOW"]

    if not isinstance(workflow, BuildWorkflow):
        raise TypeError(
            "Workflow file must return/define a BuildWorkflow. "
            "Define workflow() -> BuildWorkflow or WORKFLOW = BuildWorkflow(...)."
        )

    return workflow
