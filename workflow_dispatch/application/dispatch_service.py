"""Dispatch application service: invocation boundary. Orchestrates dispatch, URL discovery, completion."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from workflow_dispatch.application.correlator import DEFAULT_CLOCK_SKEW_TOLERANCE, RunCorrelator
from workflow_dispatch.application.exceptions import (
    ApplicationError,
    CompletionTimeoutError,
    CorrelationTimeoutError,
    WorkflowFailedError,
)
from workflow_dispatch.application.polling import (
    Clock,
    CompletionLoop,
    CompletionOutcome,
    CompletionState,
    PollSchedule,
    Sleep,
    UrlDiscoveryLoop,
    warn_if_aggressive,
)
from workflow_dispatch.core.context import run_id_ctx, workflow_ref_ctx
from workflow_dispatch.domain.models.run import DispatchRequest, InvocationResult
from workflow_dispatch.workflows.interface import WorkflowClient


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _finished_url(url_task: Optional[asyncio.Task]) -> Optional[str]:
    """URL found by a discovery task that already ended, without waiting for it."""
    if url_task is None or not url_task.done() or url_task.cancelled() or url_task.exception():
        return None
    return url_task.result()


@dataclass(frozen=True)
class InvocationOptions:
    """Parsed, validated knobs for one invocation. Durations are already in seconds."""

    wait_for_completion: bool = True
    completion: PollSchedule = field(default_factory=lambda: PollSchedule(60, 60 * 60))
    display_workflow_url: bool = True
    discovery: PollSchedule = field(default_factory=lambda: PollSchedule(60, 10 * 60))
    clock_skew_tolerance: timedelta = DEFAULT_CLOCK_SKEW_TOLERANCE


@dataclass(frozen=True)
class DispatchTarget:
    """What to trigger and as whom. actor is the identity the created run is listed under."""

    workflow_ref: str
    repo_owner: str
    repo_name: str
    git_ref: str
    actor: str
    inputs: Dict[str, str] = field(default_factory=dict)


class DispatchService:
    """
    Application-layer orchestration only. No HTTP, no environment access.
    Failure strategy: dispatch and completion-path transport errors propagate;
    URL discovery is best effort and never fails the invocation.
    """

    def __init__(
        self,
        client: WorkflowClient,
        logger: logging.Logger,
        *,
        now: Callable[[], datetime] = _utc_now,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._logger = logger
        self._now = now
        self._clock = clock
        self._sleep = sleep

    async def run(self, target: DispatchTarget, options: InvocationOptions) -> InvocationResult:
        """
        Single entry point: dispatch once, optionally surface the run URL and wait for the
        run to finish. Returns InvocationResult; succeeded is decided only by the completion step.
        """
        workflow_ref_ctx.set(target.workflow_ref)
        if options.display_workflow_url:
            warn_if_aggressive("url_discovery", options.discovery)
        if options.wait_for_completion:
            warn_if_aggressive("completion", options.completion)

        # Step 1: Resolve the workflow (fails before anything is triggered)
        workflow_id = await self._client.resolve_workflow_id(target.workflow_ref)

        # Step 2: Snapshot dispatch time and dispatch exactly once
        request = DispatchRequest(
            workflow_ref=str(workflow_id),
            repo_owner=target.repo_owner,
            repo_name=target.repo_name,
            git_ref=target.git_ref,
            inputs=dict(target.inputs),
            dispatched_at_utc=self._now(),
        )
        await self._client.dispatch(request)
        self._logger.info(
            "workflow_dispatched",
            extra={
                "workflow_id": workflow_id,
                "repository": f"{target.repo_owner}/{target.repo_name}",
                "ref": target.git_ref,
                "dispatched_at": request.dispatched_at_utc.isoformat(),
            },
        )

        correlator = RunCorrelator(
            self._client,
            request.workflow_ref,
            actor=target.actor,
            branch=request.branch,
            dispatched_at_utc=request.dispatched_at_utc,
            tolerance=options.clock_skew_tolerance,
        )

        # Step 3: URL discovery runs beside completion so it never delays it
        url_task: Optional[asyncio.Task] = None
        if options.display_workflow_url:
            discovery = UrlDiscoveryLoop(correlator, options.discovery, clock=self._clock, sleep=self._sleep)
            url_task = asyncio.create_task(self._discover_url(discovery))

        # Step 4: Wait for completion; transport errors abort the invocation
        completion: Optional[CompletionOutcome] = None
        try:
            if options.wait_for_completion:
                loop = CompletionLoop(
                    self._client, correlator, options.completion, clock=self._clock, sleep=self._sleep
                )
                completion = await loop.run()
        except BaseException as e:
            if isinstance(e, ApplicationError):
                pinned = correlator.pinned
                e.partial_result = InvocationResult(
                    succeeded=False,
                    workflow_url=_finished_url(url_task),
                    workflow_id=workflow_id,
                    run_id=pinned.run_id if pinned else None,
                    error=e,
                )
            if url_task is not None:
                url_task.cancel()
            raise
        workflow_url = await url_task if url_task is not None else None

        pinned = correlator.pinned
        run_id = pinned.run_id if pinned else None
        if run_id is not None:
            run_id_ctx.set(run_id)

        # Step 5: Fire-and-forget: success regardless of remote state
        if completion is None:
            self._logger.info(
                "workflow_not_awaited",
                extra={"workflow_id": workflow_id, "workflow_url": workflow_url},
            )
            return InvocationResult(
                succeeded=True,
                workflow_url=workflow_url,
                workflow_id=workflow_id,
                run_id=run_id,
            )

        return self._to_result(completion, workflow_id, workflow_url, run_id, options)

    async def _discover_url(self, discovery: UrlDiscoveryLoop) -> Optional[str]:
        try:
            url = await discovery.discover()
        except CorrelationTimeoutError as e:
            self._logger.warning("workflow_url_not_found", extra={"error": e.message})
            return None
        self._logger.info("workflow_url", extra={"workflow_url": url, "polls": discovery.polls})
        return url

    def _to_result(
        self,
        completion: CompletionOutcome,
        workflow_id: int,
        workflow_url: Optional[str],
        run_id: Optional[int],
        options: InvocationOptions,
    ) -> InvocationResult:
        result = InvocationResult(
            succeeded=completion.state == CompletionState.SUCCEEDED,
            workflow_url=workflow_url,
            conclusion=completion.conclusion,
            workflow_id=workflow_id,
            run_id=run_id,
        )
        extra = {
            "workflow_id": workflow_id,
            "run_id": run_id,
            "state": completion.state.value,
            "conclusion": result.conclusion,
            "polls": completion.polls,
        }

        if completion.state == CompletionState.SUCCEEDED:
            self._logger.info("workflow_run_completed", extra=extra)
        elif completion.state == CompletionState.FAILED:
            result.error = WorkflowFailedError(
                f"Workflow run {run_id} concluded with {result.conclusion}",
                conclusion=result.conclusion,
                run_id=run_id,
            )
            self._logger.error("workflow_run_failed", extra=extra)
        else:
            reason = (
                "was never correlated"
                if run_id is None
                else f"is still {completion.run.status if completion.run else 'pending'}"
            )
            result.error = CompletionTimeoutError(
                f"Workflow run {reason} after {options.completion.timeout_seconds:g}s"
            )
            self._logger.error("workflow_run_timed_out", extra=extra)
        return result
