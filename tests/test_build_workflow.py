import pytest

from guardci import BuildWorkflow, MutationPolicy, Project, errors
from guardci.actions import BUILD_ARTIFACT_NAME, REPO_PATCH_NAME
from guardci.dsl import action, job, sh
from guardci.errors import ConstructionError
from guardci.model import GitIdentity
from guardci.project import GitHub


def _step_names(steps):
    return [s.name for s in steps]


def test_requires_github_collaborator(build_task):
    with pytest.raises(ConstructionError) as exc:
        BuildWorkflow(Project("no-github"), build_task=build_task)
    assert exc.value.kind == errors.MISSING_COLLABORATOR


def test_mutable_build_has_both_guards(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task)
    assert wf.graph.job_ids == ("build", "anti-tamper", "self-mutation")


def test_immutable_build_has_no_self_mutation(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task, policy=MutationPolicy(mutable_build=False))
    assert wf.graph.job_ids == ("build", "anti-tamper")


def test_build_steps_in_order(project, build_task):
    wf = BuildWorkflow(
        project,
        build_task=build_task,
        pre_build_steps=[action("Setup Node", "actions/setup-node@v4", node_version="20")],
        post_build_steps=[sh("Snapshot", "make snapshot")],
    )
    wf.add_pre_build_steps(sh("Install", "npm ci"))
    wf.add_post_build_steps(sh("Format", "make fmt"))
    wf.finalize()

    steps = wf.graph.steps_of("build")
    assert _step_names(steps) == [
        "Checkout",
        "Setup Node",
        "Install",
        "build",
        "Snapshot",
        "Format",
        "Find mutations",
        "Upload patch",
    ]
    assert steps[0].with_ == {
        "ref": "${{ github.event.pull_request.head.ref }}",
        "repository": "${{ github.event.pull_request.head.repo.full_name }}",
    }
    assert "token" not in steps[0].with_
    assert steps[1].with_ == {"node-version": "20"}
    assert steps[3].run == "make build"


def test_diff_step_sets_output_instead_of_failing(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task)
    rendered = wf.to_dict()["jobs"]["build"]

    diff = rendered["steps"][-2]
    assert diff["id"] == "diff"
    assert "git add ." in diff["run"]
    assert 'git diff --staged --patch --exit-code > .repo.patch || echo "diff_exists=true" >> $GITHUB_OUTPUT' in diff["run"]

    patch = rendered["steps"][-1]
    assert patch["if"] == "${{ steps.diff.outputs.diff_exists }}"
    assert patch["with"] == {"name": REPO_PATCH_NAME, "path": REPO_PATCH_NAME}

    assert rendered["outputs"] == {"diff_exists": "${{ steps.diff.outputs.diff_exists }}"}


def test_build_job_env_container_permissions(project, build_task):
    wf = BuildWorkflow(
        project,
        build_task=build_task,
        container_image="node:20",
        env={"CI": "1", "FOO": "bar"},
    )
    rendered = wf.to_dict()["jobs"]["build"]
    assert rendered["container"] == {"image": "node:20"}
    assert rendered["env"] == {"CI": "1", "FOO": "bar"}
    assert rendered["permissions"] == {"contents": "read"}
    assert "needs" not in rendered
    assert "if" not in rendered


def test_default_env_sets_ci(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task)
    assert wf.to_dict()["jobs"]["build"]["env"] == {"CI": "true"}


def test_no_artifact_upload_without_post_build_jobs(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task, artifacts_directory="dist")
    wf.finalize()
    assert "Upload artifact" not in _step_names(wf.graph.steps_of("build"))


def test_post_build_job_wiring(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task, artifacts_directory="dist")
    wf.add_post_build_job(job("publish", sh("Publish", "make publish")))
    rendered = wf.to_dict()["jobs"]

    upload = rendered["build"]["steps"][-1]
    assert upload["name"] == "Upload artifact"
    assert upload["if"] == "${{ !steps.diff.outputs.diff_exists }}"
    assert upload["with"] == {"name": BUILD_ARTIFACT_NAME, "path": "dist"}

    publish = rendered["publish"]
    assert publish["needs"] == ["build"]
    assert publish["if"] == "${{ !needs.build.outputs.diff_exists }}"
    assert publish["steps"][0]["name"] == "Download build artifacts"
    assert publish["steps"][0]["with"] == {"name": BUILD_ARTIFACT_NAME, "path": "dist"}
    assert publish["steps"][1]["run"] == "make publish"

    assert wf.build_job_ids == ("build", "publish")


def test_post_build_job_without_artifacts_directory(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task)
    wf.add_post_build_job(job("publish", sh("Publish", "make publish")))
    rendered = wf.to_dict()["jobs"]

    assert _step_names(wf.graph.steps_of("publish")) == ["Publish"]
    assert "Upload artifact" not in [s["name"] for s in rendered["build"]["steps"]]


def test_post_build_job_keeps_its_own_condition(project, build_task):
    from guardci.conditions import has_label

    wf = BuildWorkflow(project, build_task=build_task)
    wf.add_post_build_job(job("release", sh("Release", "make release"), condition=has_label("release")))
    assert wf.to_dict()["jobs"]["release"]["if"] == (
        "${{ !needs.build.outputs.diff_exists && "
        "contains(github.event.pull_request.labels.*.name, 'release') }}"
    )


def test_post_build_jobs_can_chain(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task)
    wf.add_post_build_job(job("package", sh("Package", "make package")))
    wf.add_post_build_job(job("publish", sh("Publish", "make publish"), needs=["package"]))
    rendered = wf.to_dict()["jobs"]
    assert rendered["publish"]["needs"] == ["build", "package"]
    assert wf.build_job_ids == ("build", "package", "publish")


def test_contributions_rejected_after_finalize(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task)
    wf.finalize()

    with pytest.raises(ConstructionError) as exc:
        wf.add_post_build_steps(sh("late", "true"))
    assert exc.value.kind == errors.FINALIZED
    with pytest.raises(ConstructionError):
        wf.add_pre_build_steps(sh("late", "true"))
    with pytest.raises(ConstructionError):
        wf.add_post_build_job(job("late", sh("late", "true")))
    assert wf.build_job_ids == ("build",)


def test_post_build_job_registered_after_construction_adds_upload(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task, artifacts_directory="dist")
    # build job already exists; its steps are only fixed at finalize
    wf.add_post_build_job(job("docs", sh("Docs", "make docs")))
    wf.finalize()
    assert _step_names(wf.graph.steps_of("build"))[-1] == "Upload artifact"


def test_privileged_token_only_in_self_mutation(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task)
    wf.add_post_build_job(job("publish", sh("Publish", "make publish")))
    rendered = wf.to_dict()["jobs"]

    for job_id, body in rendered.items():
        has_secret = "secrets." in repr(body)
        assert has_secret == (job_id == "self-mutation"), job_id

    assert rendered["self-mutation"]["permissions"] == {"contents": "write"}
    assert rendered["anti-tamper"]["permissions"] == {"contents": "read"}
    assert rendered["publish"]["permissions"] == {}


def test_auto_approve_label_taken_from_project(build_task):
    project = Project("demo", github=GitHub(auto_approve_label="auto-approve"))
    wf = BuildWorkflow(project, build_task=build_task)
    assert wf.policy.auto_approve_label == "auto-approve"
    assert "!contains(github.event.pull_request.labels.*.name, 'auto-approve')" in (
        wf.to_dict()["jobs"]["self-mutation"]["if"]
    )


def test_project_label_fills_explicit_policy_without_one(build_task):
    project = Project("demo", github=GitHub(auto_approve_label="auto-approve"))
    wf = BuildWorkflow(project, build_task=build_task, policy=MutationPolicy(only_forks_anti_tamper=True))
    assert wf.policy.auto_approve_label == "auto-approve"
    assert wf.policy.only_forks_anti_tamper
    assert "!contains(github.event.pull_request.labels.*.name, 'auto-approve')" in (
        wf.to_dict()["jobs"]["self-mutation"]["if"]
    )


def test_policy_label_wins_over_project_label(build_task):
    project = Project("demo", github=GitHub(auto_approve_label="auto-approve"))
    wf = BuildWorkflow(project, build_task=build_task, policy=MutationPolicy(auto_approve_label="ship-it"))
    condition = wf.to_dict()["jobs"]["self-mutation"]["if"]
    assert "'ship-it'" in condition
    assert "'auto-approve'" not in condition


def test_custom_git_identity(project, build_task):
    wf = BuildWorkflow(project, build_task=build_task, git_identity=GitIdentity("bot", "bot@example.com"))
    wf.finalize()
    identity = wf.graph.steps_of("self-mutation")[3]
    assert identity.run == 'git config user.name "bot"\ngit config user.email "bot@example.com"'
