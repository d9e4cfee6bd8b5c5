# guards.py
"""
Jobs that react to drift produced by the build job.

Both guards start from a fresh checkout of the triggering ref and apply the
patch captured by the build; neither reuses the build job's workspace.
"""
from __future__ import annotations

from .actions import (
    PULL_REQUEST_REF,
    checkout_with_patch,
    set_git_identity,
)
from .conditions import Condition, and_, context_fork, has_label, not_, or_, output_true
from .model import GitIdentity, Job, JobPermission, MutationPolicy, Step


ANTI_TAMPER_JOBID = "anti-tamper"
SELF_MUTATION_JOBID = "self-mutation"
SELF_MUTATION_MESSAGE = "chore: self mutation"


def anti_tamper_condition(policy: MutationPolicy, build_job_id: str, diff_output: str) -> Condition:
    """
    Drift exists and nothing else will take care of it.

    Immutable builds: any drift, or only fork drift with only_forks_anti_tamper.
    Mutable builds: only the drift self-mutation cannot push, i.e. forks and
    (unless only_forks_anti_tamper is set) auto-approved changes.
    """
    drift = output_true(build_job_id, diff_output)
    if policy.only_forks_anti_tamper:
        return and_(drift, context_fork())
    if not policy.mutable_build:
        return drift
    # non-fork drift of a mutable build is pushed by self-mutation, so a
    # plain drift run is just build + self-mutation (scenario A)
    if policy.auto_approve_label:
        return and_(drift, or_(context_fork(), has_label(policy.auto_approve_label)))
    return and_(drift, context_fork())


def self_mutation_condition(policy: MutationPolicy, build_job_id: str, diff_output: str) -> Condition:
    conditions = [
        # no diff, nothing to push
        output_true(build_job_id, diff_output),
        # forks cannot be pushed to with our token
        not_(context_fork()),
    ]
    if policy.auto_approve_label:
        # an auto-approved change must not pick up unreviewed commits
        conditions.append(not_(has_label(policy.auto_approve_label)))
    return and_(*conditions)


def anti_tamper_job(policy: MutationPolicy, *, build_job_id: str, diff_output: str) -> Job:
    """Fails when the patch captured by the build still changes a fresh checkout."""
    return Job(
        id=ANTI_TAMPER_JOBID,
        needs=[build_job_id],
        condition=anti_tamper_condition(policy, build_job_id, diff_output),
        permissions={"contents": JobPermission.READ},
        steps=[
            *checkout_with_patch(),
            Step(
                name="Found diff after build (update your branch)",
                run="\n".join([
                    "git add .",
                    "git diff --staged --exit-code",
                ]),
            ),
        ],
    )


def self_mutation_job(
    policy: MutationPolicy,
    *,
    build_job_id: str,
    diff_output: str,
    git_identity: GitIdentity,
    token_secret: str,
) -> Job:
    """
    Commits the captured patch and pushes it to the source branch.

    Checks out with a privileged token (so the push triggers a new run);
    the token never reaches any other job. A failed push fails the job.
    """
    return Job(
        id=SELF_MUTATION_JOBID,
        needs=[build_job_id],
        condition=self_mutation_condition(policy, build_job_id, diff_output),
        permissions={"contents": JobPermission.WRITE},
        steps=[
            *checkout_with_patch(token=f"${{{{ secrets.{token_secret} }}}}"),
            *set_git_identity(git_identity),
            Step(
                name="Push changes",
                run="\n".join([
                    "git add .",
                    f'git commit -m "{SELF_MUTATION_MESSAGE}"',
                    f"git push origin HEAD:{PULL_REQUEST_REF}",
                ]),
            ),
        ],
    )
