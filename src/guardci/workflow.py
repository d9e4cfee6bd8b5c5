# workflow.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from .dag import build_dag, check_condition_refs, topo_levels
from .errors import (
    ConstructionError,
    DANGLING_REFERENCE,
    DUPLICATE_JOB,
    DUPLICATE_STEP,
    FINALIZED,
    MISSING_DEPENDENCY,
)
from .model import Job, Step


class WorkflowGraph:
    """
    The set of jobs making up one workflow, plus its triggers.

    Two phases:
      - accumulation: jobs are registered with add_job(); lazy step lists
        may still change as other callers contribute to them
      - finalized: finalize() resolves every step list once, validates the
        graph and freezes it; further registration raises ConstructionError
    """

    def __init__(self, name: str):
        self.name = name
        self._jobs: Dict[str, Job] = {}
        self._triggers: Dict[str, Dict[str, Any]] = {}
        self._steps: Optional[Dict[str, Tuple[Step, ...]]] = None

    # ------------------------------------------------------------------
    # accumulation
    # ------------------------------------------------------------------

    def on(self, **triggers: Dict[str, Any]) -> None:
        """on(pull_request={}, workflow_dispatch={}) -> `on:` section."""
        self.check_open("add triggers")
        for event, spec in triggers.items():
            self._triggers[event] = dict(spec or {})

    def add_job(self, job: Job) -> Job:
        self.check_open(f"add job '{job.id}'")

        if job.id in self._jobs:
            raise ConstructionError(DUPLICATE_JOB, f"Job '{job.id}' is already registered")

        # dependencies must already be registered, so edges only ever point
        # backwards in registration order
        for need in job.needs:
            if need not in self._jobs:
                raise ConstructionError(
                    MISSING_DEPENDENCY,
                    f"Job '{job.id}' needs '{need}', which is not registered",
                    {"known": list(self._jobs)},
                )
        check_condition_refs([job])

        self._jobs[job.id] = job
        return job

    def check_open(self, action: str) -> None:
        if self.finalized:
            raise ConstructionError(
                FINALIZED,
                f"Cannot {action}: workflow '{self.name}' is already finalized",
            )

    # ------------------------------------------------------------------
    # finalization
    # ------------------------------------------------------------------

    @property
    def finalized(self) -> bool:
        return self._steps is not None

    def finalize(self) -> "WorkflowGraph":
        """Resolve all step lists and validate the graph. Idempotent."""
        if self.finalized:
            return self

        jobs = list(self._jobs.values())
        adj, indeg = build_dag(jobs)
        topo_levels(adj, indeg)
        check_condition_refs(jobs)

        steps: Dict[str, Tuple[Step, ...]] = {}
        for job in jobs:
            resolved = tuple(job.resolved_steps())
            _check_step_refs(job, resolved)
            steps[job.id] = resolved

        self._steps = steps
        return self

    # ------------------------------------------------------------------
    # read access
    # ------------------------------------------------------------------

    @property
    def jobs(self) -> Tuple[Job, ...]:
        return tuple(self._jobs.values())

    @property
    def job_ids(self) -> Tuple[str, ...]:
        return tuple(self._jobs)

    def job(self, job_id: str) -> Job:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise KeyError(f"No job '{job_id}' in workflow '{self.name}'") from None

    def steps_of(self, job_id: str) -> Tuple[Step, ...]:
        """The final step list of a job; only available after finalize()."""
        if self._steps is None:
            raise ConstructionError(
                FINALIZED,
                f"Steps of '{job_id}' are not fixed until workflow '{self.name}' is finalized",
            )
        self.job(job_id)
        return self._steps[job_id]

    def stages(self) -> List[List[str]]:
        adj, indeg = build_dag(list(self._jobs.values()))
        return topo_levels(adj, indeg)

    def to_dict(self) -> Dict[str, Any]:
        """Render into the executor's workflow shape. Finalizes first."""
        self.finalize()
        assert self._steps is not None
        return {
            "name": self.name,
            "on": {event: dict(spec) for event, spec in self._triggers.items()},
            "jobs": {
                job.id: job.to_dict(list(self._steps[job.id]))
                for job in self._jobs.values()
            },
        }


def _check_step_refs(job: Job, steps: Tuple[Step, ...]) -> None:
    seen: set[str] = set()
    for step in steps:
        if step.if_ is not None:
            dangling = sorted(step.if_.step_refs() - seen)
            if dangling:
                raise ConstructionError(
                    DANGLING_REFERENCE,
                    f"Step '{step.name}' in job '{job.id}' reads outputs of steps that do not run before it: {dangling}",
                )
        if step.id:
            if step.id in seen:
                raise ConstructionError(
                    DUPLICATE_STEP,
                    f"Step id '{step.id}' is used twice in job '{job.id}'",
                )
            seen.add(step.id)

    for name, output in job.outputs.items():
        if output.step_id not in seen:
            raise ConstructionError(
                DANGLING_REFERENCE,
                f"Output '{name}' of job '{job.id}' reads step '{output.step_id}', which job does not have",
            )
