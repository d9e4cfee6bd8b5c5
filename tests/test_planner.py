import itertools

import pytest

from guardci import BuildWorkflow, MutationPolicy
from guardci.dsl import job, sh
from guardci.planner import FAILED, OK, SKIPPED_CONDITION, SKIPPED_NEEDS, RunFacts, simulate


def _workflow(project, build_task, **policy):
    wf = BuildWorkflow(project, build_task=build_task, artifacts_directory="dist", policy=MutationPolicy(**policy))
    wf.add_post_build_job(job("package", sh("Package", "make package")))
    wf.add_post_build_job(job("publish", sh("Publish", "make publish"), needs=["package"]))
    return wf


def test_scenario_self_mutation_fixes_non_fork_drift(project, build_task):
    wf = _workflow(project, build_task, mutable_build=True)
    run = simulate(wf.graph, RunFacts(diff_exists=True, is_fork=False))

    assert run.ran == {"build", "self-mutation"}
    assert run.results["anti-tamper"] == SKIPPED_CONDITION
    assert run.results["package"] == SKIPPED_CONDITION
    assert run.results["publish"] == SKIPPED_NEEDS
    assert not run.failed


def test_scenario_anti_tamper_rejects_fork_drift(project, build_task):
    wf = _workflow(project, build_task, mutable_build=False, only_forks_anti_tamper=True)
    run = simulate(wf.graph, RunFacts(diff_exists=True, is_fork=True))

    assert run.ran == {"build", "anti-tamper"}
    assert run.failed == {"anti-tamper"}
    assert "self-mutation" not in run.results


@pytest.mark.parametrize("mutable,only_forks,label", list(itertools.product([True, False], [True, False], [None, "auto-approve"])))
def test_scenario_clean_build_runs_post_build_jobs(project, build_task, mutable, only_forks, label):
    wf = _workflow(project, build_task, mutable_build=mutable, only_forks_anti_tamper=only_forks, auto_approve_label=label)

    for is_fork in (True, False):
        run = simulate(wf.graph, RunFacts(diff_exists=False, is_fork=is_fork, labels=frozenset({"auto-approve"})))
        assert run.ran == {"build", "package", "publish"}
        assert run.results["anti-tamper"] == SKIPPED_CONDITION
        assert run.results.get("self-mutation", SKIPPED_CONDITION) == SKIPPED_CONDITION


@pytest.mark.parametrize("mutable", [True, False])
def test_fork_drift_never_self_mutates(project, build_task, mutable):
    wf = _workflow(project, build_task, mutable_build=mutable)
    run = simulate(wf.graph, RunFacts(diff_exists=True, is_fork=True))

    assert "self-mutation" not in run.ran
    assert run.failed == {"anti-tamper"}
    assert run.results["package"] == SKIPPED_CONDITION


def test_immutable_anti_tamper_runs_on_any_drift(project, build_task):
    wf = _workflow(project, build_task, mutable_build=False)
    run = simulate(wf.graph, RunFacts(diff_exists=True, is_fork=False))
    assert run.ran == {"build", "anti-tamper"}
    assert run.failed == {"anti-tamper"}


def test_auto_approved_change_is_not_self_mutated(project, build_task):
    wf = _workflow(project, build_task, auto_approve_label="auto-approve")
    run = simulate(wf.graph, RunFacts(diff_exists=True, labels=frozenset({"auto-approve"})))

    assert run.results["self-mutation"] == SKIPPED_CONDITION
    # nobody will push the fix, so the drift is rejected instead
    assert run.failed == {"anti-tamper"}


def test_other_labels_do_not_block_self_mutation(project, build_task):
    wf = _workflow(project, build_task, auto_approve_label="auto-approve")
    run = simulate(wf.graph, RunFacts(diff_exists=True, labels=frozenset({"docs"})))
    assert run.results["self-mutation"] == OK


def test_build_failure_short_circuits_everything(project, build_task):
    wf = _workflow(project, build_task)
    run = simulate(wf.graph, RunFacts(diff_exists=True, build_succeeds=False))

    assert run.results["build"] == FAILED
    assert set(run.results) - {"build"} == run.skipped
    assert all(status == SKIPPED_NEEDS for job_id, status in run.results.items() if job_id != "build")


def test_rejected_push_fails_self_mutation(project, build_task):
    wf = _workflow(project, build_task)
    run = simulate(wf.graph, RunFacts(diff_exists=True, push_rejected=True))
    assert run.failed == {"self-mutation"}


def test_rerun_after_self_mutation_is_clean(project, build_task):
    wf = _workflow(project, build_task)
    first = simulate(wf.graph, RunFacts(diff_exists=True))
    assert "self-mutation" in first.ran

    # the pushed commit contains the patch, so the next build has no drift
    second = simulate(wf.graph, RunFacts(diff_exists=False))
    assert second.ran == {"build", "package", "publish"}


def test_graph_is_valid_for_every_policy(project, build_task):
    for mutable, only_forks, label in itertools.product([True, False], [True, False], [None, "x"]):
        wf = _workflow(project, build_task, mutable_build=mutable, only_forks_anti_tamper=only_forks, auto_approve_label=label)
        wf.finalize()
        seen = set()
        for j in wf.graph.jobs:
            assert set(j.needs) <= seen
            if j.condition is not None:
                assert j.condition.job_refs() <= set(j.needs)
            seen.add(j.id)
