"""Domain models. Dispatch requests, observed runs, poll outcomes."""

from workflow_dispatch.domain.models.run import (
    FAILING_CONCLUSIONS,
    CandidateRun,
    DispatchRequest,
    InvocationResult,
    PollOutcome,
    PollStatus,
    RunStatus,
    WorkflowConclusion,
    branch_from_ref,
    is_failing_conclusion,
)

__all__ = [
    "FAILING_CONCLUSIONS",
    "CandidateRun",
    "DispatchRequest",
    "InvocationResult",
    "PollOutcome",
    "PollStatus",
    "RunStatus",
    "WorkflowConclusion",
    "branch_from_ref",
    "is_failing_conclusion",
]
