"""Domain layer: run models, duration parsing, exceptions. Pure logic only."""

from workflow_dispatch.domain.duration import format_duration, parse_duration
from workflow_dispatch.domain.exceptions import (
    DomainError,
    InvalidDispatchRequestError,
    InvalidDurationFormatError,
)
from workflow_dispatch.domain.models import (
    CandidateRun,
    DispatchRequest,
    InvocationResult,
    PollOutcome,
    PollStatus,
    RunStatus,
    WorkflowConclusion,
)

__all__ = [
    "CandidateRun",
    "DispatchRequest",
    "DomainError",
    "InvalidDispatchRequestError",
    "InvalidDurationFormatError",
    "InvocationResult",
    "PollOutcome",
    "PollStatus",
    "RunStatus",
    "WorkflowConclusion",
    "format_duration",
    "parse_duration",
]
