# model.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from . import settings
from .conditions import Condition
from .errors import ConstructionError, MALFORMED_STEP


class JobPermission(str, enum.Enum):
    """Access level granted to a job's token for one scope (e.g. `contents`)."""
    NONE = "none"
    READ = "read"
    WRITE = "write"


@dataclass(frozen=True)
class Step:
    """
    A single step inside a job: either an action invocation (`uses` + `with_`)
    or an inline shell command (`run`).

    `id` is only required when another step or the job's outputs read from it.
    """
    name: str
    run: str | None = None
    uses: str | None = None
    with_: Dict[str, Any] = field(default_factory=dict)
    id: str | None = None
    if_: Condition | None = None
    env: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if (self.run is None) == (self.uses is None):
            raise ConstructionError(
                MALFORMED_STEP,
                f"step {self.name!r} must set exactly one of `run` or `uses`",
            )
        if self.with_ and self.uses is None:
            raise ConstructionError(
                MALFORMED_STEP,
                f"step {self.name!r} has `with` parameters but no `uses` action",
            )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.id:
            out["id"] = self.id
        out["name"] = self.name
        if self.if_ is not None:
            out["if"] = self.if_.template()
        if self.uses is not None:
            out["uses"] = self.uses
            if self.with_:
                out["with"] = dict(self.with_)
        else:
            out["run"] = self.run
        if self.env:
            out["env"] = dict(self.env)
        return out


@dataclass(frozen=True)
class JobOutput:
    """A job output, read from `steps.<step_id>.outputs.<output_name>`."""
    step_id: str
    output_name: str

    def expression(self) -> str:
        return f"${{{{ steps.{self.step_id}.outputs.{self.output_name} }}}}"


StepSource = Union[List[Step], Callable[[], List[Step]]]


@dataclass
class Job:
    """
    A job descriptor: steps + dependencies + run condition.

    `steps` may be a callable; it is resolved once, when the owning workflow
    is finalized, so late contributions from other callers are captured.
    """
    id: str
    steps: StepSource
    needs: list[str] = field(default_factory=list)
    condition: Optional[Condition] = None
    permissions: Dict[str, JobPermission] = field(default_factory=dict)
    outputs: Dict[str, JobOutput] = field(default_factory=dict)
    runs_on: list[str] = field(default_factory=lambda: [settings.RUNS_ON])
    container: str | None = None
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def is_lazy(self) -> bool:
        return callable(self.steps)

    def resolved_steps(self) -> List[Step]:
        if callable(self.steps):
            return list(self.steps())
        return list(self.steps)

    def to_dict(self, steps: Optional[List[Step]] = None) -> Dict[str, Any]:
        steps = self.resolved_steps() if steps is None else steps

        out: Dict[str, Any] = {"runs-on": list(self.runs_on)}
        if self.container:
            out["container"] = {"image": self.container}
        if self.needs:
            out["needs"] = list(self.needs)
        if self.condition is not None:
            out["if"] = self.condition.template()
        out["permissions"] = {scope: perm.value for scope, perm in self.permissions.items()}
        if self.env:
            out["env"] = dict(self.env)
        if self.outputs:
            out["outputs"] = {name: o.expression() for name, o in self.outputs.items()}
        out["steps"] = [s.to_dict() for s in steps]
        return out


@dataclass(frozen=True)
class GitIdentity:
    """Author of commits made by the pipeline."""
    name: str
    email: str


@dataclass(frozen=True)
class MutationPolicy:
    """
    What to do with drift produced by the build.

    mutable_build: push drift back to the source branch (non-fork changes).
    only_forks_anti_tamper: anti-tamper only fails fork-originated drift.
    auto_approve_label: changes carrying this label are never self-mutated.
    """
    mutable_build: bool = True
    only_forks_anti_tamper: bool = False
    auto_approve_label: Optional[str] = None
