"""Run correlation: find the run created by our dispatch, which the trigger API does not identify."""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from workflow_dispatch.core.context import run_id_ctx
from workflow_dispatch.domain.models.run import CandidateRun, PollOutcome
from workflow_dispatch.workflows.interface import WorkflowClient

logger = logging.getLogger(__name__)

DEFAULT_CLOCK_SKEW_TOLERANCE = timedelta(seconds=5)


def select_run(
    candidates: Iterable[CandidateRun],
    actor: str,
    branch: str,
    not_before: datetime,
) -> Optional[CandidateRun]:
    """
    Pick the run matching actor and branch, created at or after not_before.
    Among several matches the earliest created_at wins; ordering of candidates is irrelevant.
    """
    matches = [
        run
        for run in candidates
        if run.actor == actor
        and run.head_branch == branch
        and run.created_at_utc >= not_before
    ]
    if not matches:
        return None
    return min(matches, key=lambda run: (run.created_at_utc, run.run_id))


class RunCorrelator:
    """
    Correlates and pins one run per invocation. Shared by both polling loops:
    whichever loop correlates first pins the run for the other, and a pin is never replaced.

    Earliest-match is a heuristic. Concurrent dispatches of the same workflow, branch and
    actor within the tolerance window can be attributed to the wrong run.
    """

    def __init__(
        self,
        client: WorkflowClient,
        workflow_ref: str,
        actor: str,
        branch: str,
        dispatched_at_utc: datetime,
        tolerance: timedelta = DEFAULT_CLOCK_SKEW_TOLERANCE,
    ) -> None:
        self._client = client
        self._workflow_ref = workflow_ref
        self._actor = actor
        self._branch = branch
        self._not_before = dispatched_at_utc - tolerance
        self._pinned: Optional[CandidateRun] = None

    @property
    def pinned(self) -> Optional[CandidateRun]:
        return self._pinned

    async def correlate(self) -> PollOutcome[CandidateRun]:
        """Found once pinned (no network call); otherwise one listing, re-evaluated from scratch."""
        if self._pinned is not None:
            return PollOutcome.found(self._pinned)

        candidates = await self._client.list_recent_runs(
            self._workflow_ref,
            self._branch,
            self._actor,
            self._not_before,
        )
        run = select_run(candidates, self._actor, self._branch, self._not_before)
        if run is None:
            logger.debug(
                "workflow_run_not_correlated",
                extra={"candidates": len(candidates), "branch": self._branch, "actor": self._actor},
            )
            return PollOutcome.pending()

        # Another loop may have pinned while we were waiting on the listing.
        if self._pinned is None:
            self._pinned = run
            run_id_ctx.set(run.run_id)
            logger.info(
                "workflow_run_correlated",
                extra={"run_id": run.run_id, "html_url": run.html_url, "candidates": len(candidates)},
            )
        return PollOutcome.found(self._pinned)
