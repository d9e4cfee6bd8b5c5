# conditions.py
"""
Boolean conditions for job and step `if:` fields.

Conditions are built as a small expression tree and rendered once into the
executor's expression syntax, e.g.:

    cond = and_(output_true("build", "diff_exists"), not_(context_fork()))
    cond.template()
    # "${{ needs.build.outputs.diff_exists && !(github.event.pull_request.head.repo.full_name != github.repository) }}"

The executor evaluates the rendered string at run time. `evaluate()` exists
only so that a run can be replayed offline (see planner.py).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Set, Tuple

from .errors import ConstructionError, MALFORMED_CONDITION


TRIGGERING_REPO = "github.event.pull_request.head.repo.full_name"
CANONICAL_REPO = "github.repository"
TRIGGERING_LABELS = "github.event.pull_request.labels.*.name"


@dataclass(frozen=True)
class EvalContext:
    """Facts known once a run is in progress."""
    job_outputs: Mapping[Tuple[str, str], bool] = field(default_factory=dict)
    step_outputs: Mapping[Tuple[str, str], bool] = field(default_factory=dict)
    is_fork: bool = False
    labels: FrozenSet[str] = frozenset()


class Condition:
    """Base node. Subclasses implement render/evaluate."""

    # atomic nodes never need grouping when used as an operand
    atomic = True

    def render(self) -> str:
        raise NotImplementedError

    def evaluate(self, ctx: EvalContext) -> bool:
        raise NotImplementedError

    def job_refs(self) -> Set[str]:
        """Ids of jobs whose outputs this condition reads."""
        return set()

    def step_refs(self) -> Set[str]:
        """Ids of steps whose outputs this condition reads."""
        return set()

    def template(self) -> str:
        return "${{ " + self.render() + " }}"

    def grouped(self) -> str:
        text = self.render()
        return text if self.atomic else f"({text})"

    def __and__(self, other: "Condition") -> "Condition":
        return and_(self, other)

    def __or__(self, other: "Condition") -> "Condition":
        return or_(self, other)

    def __invert__(self) -> "Condition":
        return not_(self)

    def __str__(self) -> str:
        return self.template()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.render()!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Condition):
            return self.render() == other.render()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.render())


class OutputTrue(Condition):
    def __init__(self, job_id: str, output: str):
        self.job_id = job_id
        self.output = output

    def render(self) -> str:
        return f"needs.{self.job_id}.outputs.{self.output}"

    def evaluate(self, ctx: EvalContext) -> bool:
        return bool(ctx.job_outputs.get((self.job_id, self.output), False))

    def job_refs(self) -> Set[str]:
        return {self.job_id}


class StepOutputTrue(Condition):
    def __init__(self, step_id: str, output: str):
        self.step_id = step_id
        self.output = output

    def render(self) -> str:
        return f"steps.{self.step_id}.outputs.{self.output}"

    def evaluate(self, ctx: EvalContext) -> bool:
        return bool(ctx.step_outputs.get((self.step_id, self.output), False))

    def step_refs(self) -> Set[str]:
        return {self.step_id}


class ContextFork(Condition):
    atomic = False

    def render(self) -> str:
        return f"{TRIGGERING_REPO} != {CANONICAL_REPO}"

    def evaluate(self, ctx: EvalContext) -> bool:
        return ctx.is_fork


class HasLabel(Condition):
    def __init__(self, label: str):
        self.label = label

    def render(self) -> str:
        # single quotes are escaped by doubling inside expression literals
        literal = self.label.replace("'", "''")
        return f"contains({TRIGGERING_LABELS}, '{literal}')"

    def evaluate(self, ctx: EvalContext) -> bool:
        return self.label in ctx.labels


class Not(Condition):
    def __init__(self, operand: Condition):
        self.operand = operand

    def render(self) -> str:
        return "!" + self.operand.grouped()

    def evaluate(self, ctx: EvalContext) -> bool:
        return not self.operand.evaluate(ctx)

    def job_refs(self) -> Set[str]:
        return self.operand.job_refs()

    def step_refs(self) -> Set[str]:
        return self.operand.step_refs()


class And(Condition):
    atomic = False

    def __init__(self, operands: Tuple[Condition, ...]):
        self.operands = operands

    def render(self) -> str:
        return " && ".join(op.grouped() for op in self.operands)

    def evaluate(self, ctx: EvalContext) -> bool:
        return all(op.evaluate(ctx) for op in self.operands)

    def job_refs(self) -> Set[str]:
        refs: Set[str] = set()
        for op in self.operands:
            refs |= op.job_refs()
        return refs

    def step_refs(self) -> Set[str]:
        refs: Set[str] = set()
        for op in self.operands:
            refs |= op.step_refs()
        return refs


class Or(Condition):
    atomic = False

    def __init__(self, operands: Tuple[Condition, ...]):
        self.operands = operands

    def render(self) -> str:
        return " || ".join(op.grouped() for op in self.operands)

    def evaluate(self, ctx: EvalContext) -> bool:
        return any(op.evaluate(ctx) for op in self.operands)

    def job_refs(self) -> Set[str]:
        refs: Set[str] = set()
        for op in self.operands:
            refs |= op.job_refs()
        return refs

    def step_refs(self) -> Set[str]:
        refs: Set[str] = set()
        for op in self.operands:
            refs |= op.step_refs()
        return refs


# ---------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------

def output_true(job_id: str, output: str) -> Condition:
    """True iff job `job_id` produced a truthy value for `output`."""
    return OutputTrue(job_id, output)


def step_output_true(step_id: str, output: str) -> Condition:
    """Same as output_true, for a step earlier in the same job."""
    return StepOutputTrue(step_id, output)


def context_fork() -> Condition:
    """True iff the triggering change comes from a repository other than this one."""
    return ContextFork()


def has_label(label: str) -> Condition:
    if not label:
        raise ConstructionError(MALFORMED_CONDITION, "has_label() needs a non-empty label")
    return HasLabel(label)


def not_(operand: Condition) -> Condition:
    if not isinstance(operand, Condition):
        raise ConstructionError(
            MALFORMED_CONDITION,
            "not_() operand must be a Condition",
            {"got": type(operand).__name__},
        )
    return Not(operand)


def and_(*operands: Condition) -> Condition:
    if not operands:
        raise ConstructionError(MALFORMED_CONDITION, "and_() needs at least one operand")

    flat: list[Condition] = []
    for op in operands:
        if not isinstance(op, Condition):
            raise ConstructionError(
                MALFORMED_CONDITION,
                "and_() operands must be Conditions",
                {"got": type(op).__name__},
            )
        # a && (b && c) == a && b && c
        if isinstance(op, And):
            flat.extend(op.operands)
        else:
            flat.append(op)

    if len(flat) == 1:
        return flat[0]
    return And(tuple(flat))


def or_(*operands: Condition) -> Condition:
    if not operands:
        raise ConstructionError(MALFORMED_CONDITION, "or_() needs at least one operand")
    for op in operands:
        if not isinstance(op, Condition):
            raise ConstructionError(
                MALFORMED_CONDITION,
                "or_() operands must be Conditions",
                {"got": type(op).__name__},
            )
    if len(operands) == 1:
        return operands[0]
    return Or(tuple(operands))
