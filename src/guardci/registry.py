# registry.py
from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Tuple

from .actions import BUILD_ARTIFACT_NAME, download_artifact
from .conditions import and_, not_, output_true
from .model import Job, Step
from .workflow import WorkflowGraph


class PostBuildRegistry:
    """
    Jobs that run after a clean build.

    A registered job only runs when the build produced no drift: drift means
    either a human fix is pending (anti-tamper) or a new run is about to
    start (self-mutation), so work done now would be thrown away.
    """

    def __init__(
        self,
        graph: WorkflowGraph,
        *,
        build_job_id: str,
        diff_output: str,
        artifacts_directory: Optional[str] = None,
    ):
        self._graph = graph
        self._build_job_id = build_job_id
        self._diff_output = diff_output
        self._artifacts_directory = artifacts_directory
        self._job_ids: List[str] = []

    def add(self, job: Job) -> Job:
        self._graph.check_open(f"add post-build job '{job.id}'")

        clean_build = not_(output_true(self._build_job_id, self._diff_output))
        condition = clean_build if job.condition is None else and_(clean_build, job.condition)
        needs = [self._build_job_id] + [n for n in job.needs if n != self._build_job_id]

        wired = replace(
            job,
            needs=needs,
            condition=condition,
            steps=self._steps_for(job),
        )
        self._graph.add_job(wired)
        self._job_ids.append(wired.id)
        return wired

    def _steps_for(self, job: Job):
        prefix: List[Step] = []
        if self._artifacts_directory:
            prefix.append(download_artifact(BUILD_ARTIFACT_NAME, self._artifacts_directory))

        if job.is_lazy:
            return lambda: prefix + job.resolved_steps()
        return prefix + job.resolved_steps()

    @property
    def has_jobs(self) -> bool:
        return bool(self._job_ids)

    @property
    def job_ids(self) -> Tuple[str, ...]:
        """The build job followed by every registered post-build job."""
        return (self._build_job_id, *self._job_ids)
