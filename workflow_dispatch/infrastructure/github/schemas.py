"""Pydantic schemas for the GitHub Actions REST payloads. Parsing only, no I/O."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from workflow_dispatch.domain.models.run import CandidateRun, RunStatus


class ActorPayload(BaseModel):
    login: str

    model_config = {"extra": "ignore"}


class WorkflowRunPayload(BaseModel):
    """One entry of GET .../runs, or the body of GET /actions/runs/{id}."""

    id: int
    html_url: str
    status: Optional[str] = None
    conclusion: Optional[str] = None
    head_branch: Optional[str] = None
    created_at: datetime
    actor: Optional[ActorPayload] = None

    model_config = {"extra": "ignore"}

    def to_candidate(self) -> CandidateRun:
        return CandidateRun(
            run_id=self.id,
            html_url=self.html_url,
            actor=self.actor.login if self.actor else None,
            head_branch=self.head_branch,
            created_at_utc=self.created_at,
            status=self.status or RunStatus.QUEUED.value,
            conclusion=self.conclusion,
        )


class WorkflowRunsPage(BaseModel):
    total_count: int = 0
    workflow_runs: List[WorkflowRunPayload] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class WorkflowPayload(BaseModel):
    id: int
    name: str
    path: str
    state: Optional[str] = None

    model_config = {"extra": "ignore"}

    def matches(self, workflow_ref: str) -> bool:
        """Match on display name, full path, or file name (".github/workflows/<file>")."""
        file_name = self.path.rsplit("/", 1)[-1]
        return workflow_ref in (self.name, self.path, file_name)


class WorkflowsPage(BaseModel):
    total_count: int = 0
    workflows: List[WorkflowPayload] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class DispatchPayload(BaseModel):
    """Body of POST .../dispatches."""

    ref: str = Field(..., min_length=1)
    inputs: Dict[str, str] = Field(default_factory=dict)
