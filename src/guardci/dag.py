# dag.py
from __future__ import annotations

from collections import deque
from typing import Dict, List, Set, Tuple

from .errors import (
    ConstructionError,
    CYCLE,
    DANGLING_REFERENCE,
    DUPLICATE_JOB,
    MISSING_DEPENDENCY,
)
from .model import Job


def build_dag(jobs: List[Job]) -> Tuple[Dict[str, Set[str]], Dict[str, int]]:
    """
    Build a DAG from Job objects.

    Requires:
      - job.id: str (unique)
      - job.needs: iterable[str] (ids of jobs that must complete BEFORE this job)
    """
    ids = [j.id for j in jobs]
    if len(set(ids)) != len(ids):
        dupes = sorted({n for n in ids if ids.count(n) > 1})
        raise ConstructionError(DUPLICATE_JOB, f"Duplicate job ids found: {dupes}")

    id_set = set(ids)
    adj: Dict[str, Set[str]] = {n: set() for n in id_set}
    indeg: Dict[str, int] = {n: 0 for n in id_set}

    for job in jobs:
        for need in job.needs:
            if need not in id_set:
                raise ConstructionError(
                    MISSING_DEPENDENCY,
                    f"Job '{job.id}' needs missing job '{need}'",
                    {"known": sorted(id_set)},
                )
            # Edge need -> job.id (need must run before job)
            if job.id not in adj[need]:
                adj[need].add(job.id)
                indeg[job.id] += 1

    return adj, indeg


def topo_levels(adj: Dict[str, Set[str]], indeg: Dict[str, int]) -> List[List[str]]:
    """
    Convert DAG into topological "levels" (stages).
    Jobs in the same stage may run in parallel.
    """
    indeg = dict(indeg)  # copy (we mutate it)
    q = deque(sorted([n for n, d in indeg.items() if d == 0]))

    levels: List[List[str]] = []
    processed = 0

    while q:
        level_size = len(q)
        level: List[str] = []

        for _ in range(level_size):
            node = q.popleft()
            level.append(node)
            processed += 1

            for child in sorted(adj.get(node, set())):
                indeg[child] -= 1
                if indeg[child] == 0:
                    q.append(child)

        levels.append(level)

    if processed != len(indeg):
        remaining = sorted([n for n, d in indeg.items() if d > 0])
        raise ConstructionError(CYCLE, f"Job graph has a cycle. Stuck jobs: {remaining}")

    return levels


def check_condition_refs(jobs: List[Job]) -> None:
    """
    A job-level condition may only read outputs of jobs listed in its `needs`;
    anything else is not guaranteed to have completed when it is evaluated.
    """
    for job in jobs:
        if job.condition is None:
            continue
        dangling = sorted(job.condition.job_refs() - set(job.needs))
        if dangling:
            raise ConstructionError(
                DANGLING_REFERENCE,
                f"Job '{job.id}' condition reads outputs of jobs it does not need: {dangling}",
                {"needs": list(job.needs)},
            )
