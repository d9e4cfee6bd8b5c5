# guardci_workflow.py
# The build workflow for guardci itself: install, test, and keep generated
# files in sync. Run `guardci synth` after editing.
from __future__ import annotations

from guardci import BuildWorkflow, GitHub, JobPermission, Project, action, job, sh


def workflow():
    project = Project("guardci", github=GitHub(auto_approve_label="auto-approve"), task_runner="make")
    build = project.add_task("build", "Install, test and regenerate workflow files")

    wf = BuildWorkflow(
        project,
        build_task=build,
        artifacts_directory="dist",
        pre_build_steps=[
            action("Setup Python", "actions/setup-python@v5", python_version="3.12"),
            sh("Install", "pip install -e '.[test]'"),
        ],
    )

    # generated workflow must match the committed one, otherwise it's drift
    wf.add_post_build_steps(sh("Synth workflow", "guardci synth"))

    wf.add_post_build_job(
        job(
            "package",
            sh("List artifacts", "ls -la dist"),
            permissions={"contents": JobPermission.READ},
        )
    )
    return wf
