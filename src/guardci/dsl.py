# src/guardci/dsl.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .conditions import Condition
from .errors import ConstructionError, MALFORMED_STEP
from .model import Job, JobPermission, Step


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def sh(name: str, cmd: str, *, id: str | None = None, if_: Condition | None = None) -> Step:
    """Create a shell step."""
    return Step(name=name, run=cmd, id=id, if_=if_)


def action(
    name: str,
    uses: str,
    *,
    id: str | None = None,
    if_: Condition | None = None,
    **params: Any,
) -> Step:
    """Create an action step: action("Setup", "actions/setup-python@v5", python_version="3.12")."""
    # keyword args can't contain dashes, action inputs often do
    with_ = {k.replace("_", "-"): v for k, v in params.items()}
    return Step(name=name, uses=uses, with_=with_, id=id, if_=if_)


# ---------------------------------------------------------------------
# Functional Job helper
# ---------------------------------------------------------------------

def job(
    id: str,
    *steps: Step,  # allow: job("x", sh(...), sh(...))
    steps_list: Optional[List[Step]] = None,  # allow: job("x", steps_list=[...])
    needs: Optional[List[str]] = None,
    condition: Condition | None = None,
    permissions: Optional[Dict[str, JobPermission]] = None,
    env: Optional[Dict[str, str]] = None,
    runs_on: Optional[List[str]] = None,
    container: str | None = None,
) -> Job:
    steps_final: List[Step] = []
    if steps_list:
        steps_final.extend(list(steps_list))
    steps_final.extend(list(steps))

    if not steps_final:
        raise ConstructionError(MALFORMED_STEP, f"job({id!r}) must have at least one step")

    j = Job(
        id=id,
        steps=steps_final,
        needs=needs or [],
        condition=condition,
        permissions=permissions or {},
        env=env or {},
        container=container,
    )
    if runs_on:
        j.runs_on = list(runs_on)
    return j
