# workflow_dispatch/infrastructure/github/client.py

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from workflow_dispatch.application.exceptions import TransportError, WorkflowNotFoundError
from workflow_dispatch.domain.models.run import CandidateRun, DispatchRequest
from workflow_dispatch.infrastructure.github.schemas import (
    DispatchPayload,
    WorkflowRunPayload,
    WorkflowRunsPage,
    WorkflowsPage,
)
from workflow_dispatch.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
DISPATCH_EVENT = "workflow_dispatch"


@dataclass(frozen=True)
class ClientCredentials:
    """Explicit credential bundle. The client never reads the environment."""

    token: str = field(repr=False)
    owner: str
    repo: str
    api_url: str = DEFAULT_API_URL


def _created_filter(since_utc: datetime) -> str:
    return ">=" + since_utc.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text[:200]


class GitHubWorkflowClient:
    """
    WorkflowClient over the GitHub Actions REST API (httpx.AsyncClient).
    Every request is counted in metrics as api_call_count{operation}; failures raise TransportError.
    Workflow id resolution is cached for the life of the client (one invocation).
    """

    def __init__(
        self,
        credentials: ClientCredentials,
        *,
        metrics: Optional[MetricsCollector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout_seconds: float = 30.0,
        per_page: int = 100,
    ) -> None:
        self._credentials = credentials
        self._metrics = metrics
        self._per_page = per_page
        self._workflow_ids: Dict[str, int] = {}
        self._http = httpx.AsyncClient(
            base_url=credentials.api_url.rstrip("/"),
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {credentials.token}",
                "X-GitHub-Api-Version": API_VERSION,
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self._credentials.owner}/{self._credentials.repo}"

    async def __aenter__(self) -> "GitHubWorkflowClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        start = time.monotonic()
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{operation} failed: {e}") from e
        finally:
            if self._metrics:
                self._metrics.increment("api_call_count", 1, operation=operation)
                self._metrics.observe_latency(
                    "api_call_latency_ms", (time.monotonic() - start) * 1000, operation=operation
                )
        if response.status_code >= 400:
            if self._metrics:
                self._metrics.increment("api_error_count", 1, operation=operation)
            raise TransportError(
                f"{operation} failed with HTTP {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        remaining = response.headers.get("x-ratelimit-remaining")
        if remaining is not None:
            logger.debug(
                "api_rate_limit_remaining",
                extra={"operation": operation, "remaining": remaining},
            )
        return response

    def _parse(self, operation: str, model: Any, response: httpx.Response) -> Any:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TransportError(f"{operation} returned an unexpected payload: {e}") from e

    async def resolve_workflow_id(self, workflow_ref: str) -> int:
        """Numeric refs are used as is; names and file names are looked up in the repository."""
        ref = workflow_ref.strip()
        if ref.isdigit():
            return int(ref)
        if ref in self._workflow_ids:
            return self._workflow_ids[ref]

        page = 1
        seen = 0
        while True:
            response = await self._request(
                "list_workflows",
                "GET",
                f"{self._repo_path}/actions/workflows",
                params={"per_page": self._per_page, "page": page},
            )
            listing: WorkflowsPage = self._parse("list_workflows", WorkflowsPage, response)
            for workflow in listing.workflows:
                if workflow.matches(ref):
                    self._workflow_ids[ref] = workflow.id
                    logger.info(
                        "workflow_resolved",
                        extra={"workflow": ref, "workflow_id": workflow.id, "path": workflow.path},
                    )
                    return workflow.id
            seen += len(listing.workflows)
            if not listing.workflows or seen >= listing.total_count:
                break
            page += 1

        raise WorkflowNotFoundError(
            f"Workflow {ref!r} not found in {self._credentials.owner}/{self._credentials.repo}"
        )

    async def dispatch(self, request: DispatchRequest) -> None:
        workflow_id = await self.resolve_workflow_id(request.workflow_ref)
        payload = DispatchPayload(ref=request.git_ref, inputs=request.inputs)
        await self._request(
            "dispatch",
            "POST",
            f"{self._repo_path}/actions/workflows/{workflow_id}/dispatches",
            json=payload.model_dump(),
        )

    async def list_recent_runs(
        self,
        workflow_ref: str,
        branch: str,
        actor: str,
        since_utc: datetime,
    ) -> List[CandidateRun]:
        workflow_id = await self.resolve_workflow_id(workflow_ref)
        response = await self._request(
            "list_runs",
            "GET",
            f"{self._repo_path}/actions/workflows/{workflow_id}/runs",
            params={
                "event": DISPATCH_EVENT,
                "branch": branch,
                "actor": actor,
                "created": _created_filter(since_utc),
                "per_page": self._per_page,
            },
        )
        listing: WorkflowRunsPage = self._parse("list_runs", WorkflowRunsPage, response)
        return [run.to_candidate() for run in listing.workflow_runs]

    async def get_run(self, run_id: int) -> CandidateRun:
        response = await self._request("get_run", "GET", f"{self._repo_path}/actions/runs/{run_id}")
        payload: WorkflowRunPayload = self._parse("get_run", WorkflowRunPayload, response)
        return payload.to_candidate()
