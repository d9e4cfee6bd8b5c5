from __future__ import annotations

import pytest

from guardci import GitHub, Project


@pytest.fixture
def project():
    return Project("demo", github=GitHub(token_secret="PUSH_TOKEN"), task_runner="make")


@pytest.fixture
def build_task(project):
    return project.add_task("build")
