"""Domain model for dispatched workflow runs. Pure semantics, no HTTP or JSON."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Generic, Optional, TypeVar

from workflow_dispatch.domain.exceptions import InvalidDispatchRequestError

T = TypeVar("T")


class RunStatus(str, Enum):
    """Lifecycle status reported for a run. Only COMPLETED is terminal."""

    REQUESTED = "requested"
    QUEUED = "queued"
    PENDING = "pending"
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class WorkflowConclusion(str, Enum):
    """Closed set of terminal outcomes for a run."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"
    NEUTRAL = "neutral"
    ACTION_REQUIRED = "action_required"


FAILING_CONCLUSIONS: FrozenSet[str] = frozenset(
    {
        WorkflowConclusion.FAILURE.value,
        WorkflowConclusion.CANCELLED.value,
        WorkflowConclusion.TIMED_OUT.value,
    }
)


def is_failing_conclusion(conclusion: Optional[str]) -> bool:
    """True only for failure, cancelled and timed_out. Unknown values do not fail."""
    return conclusion is not None and conclusion.lower() in FAILING_CONCLUSIONS


@dataclass(frozen=True)
class DispatchRequest:
    """
    One trigger event per invocation. Immutable once built.
    workflow_ref may be a workflow name, a file name or a numeric id.
    """

    workflow_ref: str
    repo_owner: str
    repo_name: str
    git_ref: str
    dispatched_at_utc: datetime
    inputs: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("workflow_ref", "repo_owner", "repo_name", "git_ref"):
            if not getattr(self, name):
                raise InvalidDispatchRequestError(f"DispatchRequest.{name} must not be empty")
        if self.dispatched_at_utc.tzinfo is None:
            raise InvalidDispatchRequestError("DispatchRequest.dispatched_at_utc must be timezone-aware")

    @property
    def branch(self) -> str:
        return branch_from_ref(self.git_ref)


def branch_from_ref(git_ref: str) -> str:
    """refs/heads/main -> main, refs/tags/v1 -> v1; bare names are returned unchanged."""
    for prefix in ("refs/heads/", "refs/tags/"):
        if git_ref.startswith(prefix):
            return git_ref[len(prefix):]
    return git_ref


@dataclass(frozen=True)
class CandidateRun:
    """One row of a run listing (or a single-run fetch). Never cached across polls."""

    run_id: int
    html_url: str
    actor: Optional[str]
    head_branch: Optional[str]
    created_at_utc: datetime
    status: str
    conclusion: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status == RunStatus.COMPLETED.value

    @property
    def is_failure(self) -> bool:
        return self.is_terminal and is_failing_conclusion(self.conclusion)


class PollStatus(str, Enum):
    PENDING = "pending"
    FOUND = "found"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class PollOutcome(Generic[T]):
    """Tagged result of one poll or of a whole loop. FOUND and TIMED_OUT are terminal."""

    status: PollStatus
    value: Optional[T] = None

    @classmethod
    def pending(cls) -> "PollOutcome[Any]":
        return cls(PollStatus.PENDING)

    @classmethod
    def found(cls, value: T) -> "PollOutcome[T]":
        return cls(PollStatus.FOUND, value)

    @classmethod
    def timed_out(cls) -> "PollOutcome[Any]":
        return cls(PollStatus.TIMED_OUT)

    @property
    def is_found(self) -> bool:
        return self.status == PollStatus.FOUND


@dataclass
class InvocationResult:
    """
    Terminal output of one invocation. succeeded is the pass/fail signal for the caller;
    error holds the failure cause when succeeded is False.
    """

    succeeded: bool
    workflow_url: Optional[str] = None
    conclusion: Optional[str] = None
    workflow_id: Optional[int] = None
    run_id: Optional[int] = None
    error: Optional[Exception] = None

    def raise_for_failure(self) -> None:
        """Re-raise the failure cause, if any."""
        if not self.succeeded and self.error is not None:
            raise self.error
