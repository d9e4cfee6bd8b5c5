# synth.py
from __future__ import annotations

from pathlib import Path

import yaml

from .workflow import WorkflowGraph


class _WorkflowDumper(yaml.SafeDumper):
    pass


def _str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.Node:
    # multi-line shell scripts read better as literal blocks
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_WorkflowDumper.add_representer(str, _str_representer)


def to_yaml(graph: WorkflowGraph) -> str:
    """Finalize `graph` and render it as a workflow file."""
    header = "# ~~ Generated by guardci. To modify, edit the workflow definition and run `guardci synth`.\n\n"
    body = yaml.dump(
        graph.to_dict(),
        Dumper=_WorkflowDumper,
        sort_keys=False,
        default_flow_style=False,
        width=1000,
    )
    return header + body


def write_workflow(graph: WorkflowGraph, out_dir: str | Path) -> Path:
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    path = out / f"{graph.name}.yml"
    path.write_text(to_yaml(graph), encoding="utf-8")
    return path
