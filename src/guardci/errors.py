# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


# Kinds of construction-time failures. All of them are raised while the
# graph is being built, never deferred to render or execution time.
MISSING_COLLABORATOR = "missing_collaborator"
MALFORMED_CONDITION = "malformed_condition"
DUPLICATE_JOB = "duplicate_job"
MISSING_DEPENDENCY = "missing_dependency"
CYCLE = "cycle"
DANGLING_REFERENCE = "dangling_reference"
FINALIZED = "finalized"
MALFORMED_STEP = "malformed_step"
DUPLICATE_STEP = "duplicate_step"


@dataclass
class ConstructionError(Exception):
    """
    Structured graph-construction error with enough context for:
      - clean CLI output
      - assertions in tests (match on `kind`)
    """
    kind: str
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)
