# planner.py
"""
Offline replay of a build workflow run.

The executor runs a job once all of its `needs` have succeeded and its `if:`
condition evaluates true; a job whose dependencies failed or were skipped is
skipped too. simulate() applies the same rules to a finalized graph for a
given set of run facts, which lets the mutation policy be checked without a
real pipeline.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Set, Tuple

from .build import BUILD_JOBID, DIFF_EXISTS
from .conditions import EvalContext
from .dag import build_dag
from .guards import ANTI_TAMPER_JOBID, SELF_MUTATION_JOBID
from .workflow import WorkflowGraph


OK = "ok"
FAILED = "failed"
SKIPPED_CONDITION = "skipped(condition)"
SKIPPED_NEEDS = "skipped(needs)"


@dataclass(frozen=True)
class RunFacts:
    """What happened in (or around) a run."""
    diff_exists: bool = False
    is_fork: bool = False
    labels: FrozenSet[str] = frozenset()
    build_succeeds: bool = True
    push_rejected: bool = False


@dataclass
class SimulatedRun:
    results: Dict[str, str] = field(default_factory=dict)

    @property
    def ran(self) -> Set[str]:
        return {job for job, status in self.results.items() if status in (OK, FAILED)}

    @property
    def failed(self) -> Set[str]:
        return {job for job, status in self.results.items() if status == FAILED}

    @property
    def skipped(self) -> Set[str]:
        return set(self.results) - self.ran


def _outcome(job_id: str, facts: RunFacts) -> str:
    if job_id == BUILD_JOBID and not facts.build_succeeds:
        return FAILED
    # anti-tamper only runs on drift, and drift is exactly what it rejects
    if job_id == ANTI_TAMPER_JOBID:
        return FAILED
    if job_id == SELF_MUTATION_JOBID and facts.push_rejected:
        return FAILED
    return OK


def simulate(graph: WorkflowGraph, facts: RunFacts) -> SimulatedRun:
    graph.finalize()

    adj, indeg = build_dag(list(graph.jobs))
    indeg = dict(indeg)
    ready = deque(job_id for job_id in graph.job_ids if indeg[job_id] == 0)

    run = SimulatedRun()
    job_outputs: Dict[Tuple[str, str], bool] = {}

    while ready:
        job_id = ready.popleft()
        job = graph.job(job_id)

        ctx = EvalContext(
            job_outputs=dict(job_outputs),
            is_fork=facts.is_fork,
            labels=facts.labels,
        )

        if any(run.results.get(need) != OK for need in job.needs):
            status = SKIPPED_NEEDS
        elif job.condition is not None and not job.condition.evaluate(ctx):
            status = SKIPPED_CONDITION
        else:
            status = _outcome(job_id, facts)

        run.results[job_id] = status

        if status == OK:
            for name in job.outputs:
                if name == DIFF_EXISTS:
                    job_outputs[(job_id, name)] = facts.diff_exists

        # registration order keeps the replay deterministic
        for child in graph.job_ids:
            if child in adj[job_id]:
                indeg[child] -= 1
                if indeg[child] == 0:
                    ready.append(child)

    return run
