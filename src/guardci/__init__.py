from .build import BuildWorkflow, BUILD_JOBID, DIFF_EXISTS
from .conditions import and_, context_fork, has_label, not_, or_, output_true, step_output_true
from .dsl import action, job, sh
from .errors import ConstructionError
from .model import GitIdentity, Job, JobOutput, JobPermission, MutationPolicy, Step
from .planner import RunFacts, simulate
from .project import GitHub, Project, Task
from .workflow import WorkflowGraph

__all__ = [
    "BuildWorkflow", "BUILD_JOBID", "DIFF_EXISTS",
    "and_", "context_fork", "has_label", "not_", "or_", "output_true", "step_output_true",
    "action", "job", "sh",
    "ConstructionError",
    "GitIdentity", "Job", "JobOutput", "JobPermission", "MutationPolicy", "Step",
    "RunFacts", "simulate",
    "GitHub", "Project", "Task",
    "WorkflowGraph",
]
