"""Remote workflow client interface. Application layer depends on this protocol."""

from datetime import datetime
from typing import Protocol, Sequence

from workflow_dispatch.domain.models.run import CandidateRun, DispatchRequest


class WorkflowClient(Protocol):
    """
    Contract over the remote CI API. The only I/O boundary of the engine.
    Every method may raise TransportError and consumes rate-limit quota.
    """

    async def resolve_workflow_id(self, workflow_ref: str) -> int:
        """Resolve a workflow name, file name or numeric id to the numeric id."""
        ...

    async def dispatch(self, request: DispatchRequest) -> None:
        """Fire the trigger event. Not idempotent: each call creates a run."""
        ...

    async def list_recent_runs(
        self,
        workflow_ref: str,
        branch: str,
        actor: str,
        since_utc: datetime,
    ) -> Sequence[CandidateRun]:
        """Runs of the workflow for branch/actor created at or after since_utc. Order is not guaranteed."""
        ...

    async def get_run(self, run_id: int) -> CandidateRun:
        """Current status and conclusion of a single run."""
        ...
