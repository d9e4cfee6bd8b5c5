# actions.py
"""
Reusable step sequences: checkout, patch capture/apply, git identity and
artifact transfer. Artifacts are addressed by fixed names so that jobs can
exchange them without any other coordination.
"""
from __future__ import annotations

from typing import List

from .conditions import Condition
from .model import GitIdentity, Step


CHECKOUT_ACTION = "actions/checkout@v4"
UPLOAD_ARTIFACT_ACTION = "actions/upload-artifact@v4"
DOWNLOAD_ARTIFACT_ACTION = "actions/download-artifact@v4"

BUILD_ARTIFACT_NAME = "build-artifact"
REPO_PATCH_NAME = ".repo.patch"
RUNNER_TEMP = "${{ runner.temp }}"

PULL_REQUEST_REF = "${{ github.event.pull_request.head.ref }}"
PULL_REQUEST_REPOSITORY = "${{ github.event.pull_request.head.repo.full_name }}"

DEFAULT_GITHUB_ACTIONS_USER = GitIdentity(
    name="github-actions",
    email="github-actions@github.com",
)


def checkout(
    *,
    ref: str = PULL_REQUEST_REF,
    repository: str = PULL_REQUEST_REPOSITORY,
    token: str | None = None,
) -> Step:
    """Check out `ref` of `repository` (which may be a fork)."""
    params = {"ref": ref, "repository": repository}
    if token:
        params["token"] = token
    return Step(name="Checkout", uses=CHECKOUT_ACTION, with_=params)


def diff_step(step_id: str, output_name: str) -> Step:
    """
    Stage everything and write the staged diff to the patch file.

    A non-empty diff does not fail the step: it sets `output_name=true`
    instead, so later jobs can decide what drift means.
    """
    return Step(
        name="Find mutations",
        id=step_id,
        run="\n".join([
            "git add .",
            f'git diff --staged --patch --exit-code > {REPO_PATCH_NAME} || echo "{output_name}=true" >> $GITHUB_OUTPUT',
        ]),
    )


def upload_git_patch(*, if_: Condition) -> Step:
    return Step(
        name="Upload patch",
        uses=UPLOAD_ARTIFACT_ACTION,
        if_=if_,
        with_={"name": REPO_PATCH_NAME, "path": REPO_PATCH_NAME},
    )


def checkout_with_patch(
    *,
    ref: str = PULL_REQUEST_REF,
    repository: str = PULL_REQUEST_REPOSITORY,
    token: str | None = None,
) -> List[Step]:
    """Fresh checkout, then apply the patch captured by the build job."""
    return [
        checkout(ref=ref, repository=repository, token=token),
        Step(
            name="Download patch",
            uses=DOWNLOAD_ARTIFACT_ACTION,
            with_={"name": REPO_PATCH_NAME, "path": RUNNER_TEMP},
        ),
        Step(
            name="Apply patch",
            run=f'if [ -s {RUNNER_TEMP}/{REPO_PATCH_NAME} ]; then git apply {RUNNER_TEMP}/{REPO_PATCH_NAME}; else echo "Empty patch. Skipping."; fi',
        ),
    ]


def set_git_identity(identity: GitIdentity) -> List[Step]:
    return [
        Step(
            name="Set git identity",
            run="\n".join([
                f'git config user.name "{identity.name}"',
                f'git config user.email "{identity.email}"',
            ]),
        ),
    ]


def upload_artifact(name: str, path: str, *, if_: Condition | None = None) -> Step:
    return Step(
        name="Upload artifact",
        uses=UPLOAD_ARTIFACT_ACTION,
        if_=if_,
        with_={"name": name, "path": path},
    )


def download_artifact(name: str, path: str) -> Step:
    return Step(
        name="Download build artifacts",
        uses=DOWNLOAD_ARTIFACT_ACTION,
        with_={"name": name, "path": path},
    )
