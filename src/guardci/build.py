# build.py
from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from . import actions
from .conditions import not_, step_output_true
from .errors import ConstructionError, MISSING_COLLABORATOR
from .guards import anti_tamper_job, self_mutation_job
from .model import GitIdentity, Job, JobOutput, JobPermission, MutationPolicy, Step
from .project import GitHub, Project, Task
from .registry import PostBuildRegistry
from .workflow import WorkflowGraph


BUILD_JOBID = "build"
DIFF_STEP = "diff"
DIFF_EXISTS = "diff_exists"


class BuildWorkflow:
    """
    The `build` workflow of a project.

    Jobs:
      - build: checkout, pre-build steps, build task, post-build steps, then
        record whether the build left changes behind (`diff_exists`)
      - anti-tamper: fails on drift that is not fixed automatically
      - self-mutation: (mutable builds) pushes drift back to the branch
      - post-build jobs: registered by callers, run only on a clean build

    The build job's steps are rendered lazily, on finalize(), so steps and
    post-build jobs added after construction are part of the output.
    """

    def __init__(
        self,
        project: Project,
        *,
        build_task: Task,
        artifacts_directory: Optional[str] = None,
        container_image: Optional[str] = None,
        policy: Optional[MutationPolicy] = None,
        pre_build_steps: Optional[List[Step]] = None,
        post_build_steps: Optional[List[Step]] = None,
        git_identity: Optional[GitIdentity] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        github = project.github
        if github is None:
            raise ConstructionError(
                MISSING_COLLABORATOR,
                "BuildWorkflow is currently only supported for GitHub projects",
                {"project": project.name},
            )

        self.project = project
        self.github: GitHub = github
        self.build_task = build_task
        self.artifacts_directory = artifacts_directory
        policy = policy or MutationPolicy()
        if policy.auto_approve_label is None and github.auto_approve_label:
            policy = replace(policy, auto_approve_label=github.auto_approve_label)
        self.policy = policy
        self.git_identity = git_identity or actions.DEFAULT_GITHUB_ACTIONS_USER

        self._pre_build_steps: List[Step] = list(pre_build_steps or [])
        self._post_build_steps: List[Step] = list(post_build_steps or [])

        self.graph = WorkflowGraph("build")
        self.graph.on(
            pull_request={},
            workflow_dispatch={},  # allow manual triggering
        )

        self.post_build = PostBuildRegistry(
            self.graph,
            build_job_id=BUILD_JOBID,
            diff_output=DIFF_EXISTS,
            artifacts_directory=artifacts_directory,
        )

        self._add_build_job(container_image, env or {})
        self.graph.add_job(anti_tamper_job(self.policy, build_job_id=BUILD_JOBID, diff_output=DIFF_EXISTS))
        if self.policy.mutable_build:
            self.graph.add_job(
                self_mutation_job(
                    self.policy,
                    build_job_id=BUILD_JOBID,
                    diff_output=DIFF_EXISTS,
                    git_identity=self.git_identity,
                    token_secret=github.token_secret,
                )
            )

    def _add_build_job(self, container_image: Optional[str], env: Dict[str, str]) -> None:
        self.graph.add_job(
            Job(
                id=BUILD_JOBID,
                container=container_image,
                env={"CI": "true", **env},
                # the build token can read but never push
                permissions={"contents": JobPermission.READ},
                steps=self._render_build_steps,
                outputs={DIFF_EXISTS: JobOutput(step_id=DIFF_STEP, output_name=DIFF_EXISTS)},
            )
        )

    # ------------------------------------------------------------------
    # Caller contributions (before finalize)
    # ------------------------------------------------------------------

    def add_pre_build_steps(self, *steps: Step) -> None:
        """Adds steps that are executed before the build task."""
        self.graph.check_open("add pre-build steps")
        self._pre_build_steps.extend(steps)

    def add_post_build_steps(self, *steps: Step) -> None:
        """Adds steps that are executed after the build task, before the diff."""
        self.graph.check_open("add post-build steps")
        self._post_build_steps.extend(steps)

    def add_post_build_job(self, job: Job) -> Job:
        """
        Adds another job to the build workflow which is executed after the
        build job succeeded.

        Jobs are executed _only_ if the build did NOT produce drift. With drift
        the branch will either be updated (a new run follows) or the build
        fails in anti-tamper, so there is no point in running the job.
        """
        return self.post_build.add(job)

    @property
    def build_job_ids(self) -> Tuple[str, ...]:
        """Returns the ids of the jobs that together make up "the build"."""
        return self.post_build.job_ids

    # ------------------------------------------------------------------
    # Render
    # ------------------------------------------------------------------

    def finalize(self) -> WorkflowGraph:
        return self.graph.finalize()

    def to_dict(self) -> dict:
        return self.graph.to_dict()

    def _render_build_steps(self) -> List[Step]:
        """Called (lazily) on finalize to render the build job steps."""
        diff_exists = step_output_true(DIFF_STEP, DIFF_EXISTS)

        steps: List[Step] = [
            actions.checkout(),
            *self._pre_build_steps,
            Step(
                name=self.build_task.name,
                run=self.project.run_task_command(self.build_task),
            ),
            *self._post_build_steps,
            actions.diff_step(DIFF_STEP, DIFF_EXISTS),
            actions.upload_git_patch(if_=diff_exists),
        ]

        # upload the build artifact only if there are post-build jobs and
        # only if there was NO drift
        if self.post_build.has_jobs and self.artifacts_directory:
            steps.append(
                actions.upload_artifact(
                    actions.BUILD_ARTIFACT_NAME,
                    self.artifacts_directory,
                    if_=not_(diff_exists),
                )
            )

        return steps
