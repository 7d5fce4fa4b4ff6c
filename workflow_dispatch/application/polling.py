"""
Polling state machines for a dispatched run.

UrlDiscoveryLoop: POLLING -> FOUND | TIMED_OUT. Best effort; never fails the invocation.
CompletionLoop:   POLLING -> SUCCEEDED | FAILED | TIMED_OUT. TIMED_OUT counts as a failure.

Transitions are pure functions of (observation, elapsed, timeout). Suspension between
polls goes through an injected sleep, elapsed time through an injected clock.
A zero timeout means zero polls and an immediate TIMED_OUT.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from workflow_dispatch.application.correlator import RunCorrelator
from workflow_dispatch.application.exceptions import CorrelationTimeoutError, TransportError
from workflow_dispatch.core.context import run_id_ctx
from workflow_dispatch.domain.models.run import CandidateRun, PollOutcome
from workflow_dispatch.workflows.interface import WorkflowClient

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

# Intervals below this log a rate-limit warning; they are not rejected.
MIN_RECOMMENDED_INTERVAL_SECONDS = 5


class DiscoveryState(str, Enum):
    POLLING = "polling"
    FOUND = "found"
    TIMED_OUT = "timed_out"


class CompletionState(str, Enum):
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class PollSchedule:
    """Interval between polls and overall budget, in seconds."""

    interval_seconds: float
    timeout_seconds: float

    def __post_init__(self) -> None:
        if self.interval_seconds < 0 or self.timeout_seconds < 0:
            raise ValueError("PollSchedule interval and timeout must be non-negative")

    def next_delay(self, elapsed: float) -> float:
        """Interval to the next poll, shortened so the last sleep ends at the timeout."""
        return max(0.0, min(self.interval_seconds, self.timeout_seconds - elapsed))


@dataclass(frozen=True)
class CompletionOutcome:
    state: CompletionState
    run: Optional[CandidateRun] = None
    polls: int = 0

    @property
    def conclusion(self) -> Optional[str]:
        if self.run is None or not self.run.is_terminal:
            return None
        return self.run.conclusion


def discovery_transition(outcome: PollOutcome, elapsed: float, timeout: float) -> DiscoveryState:
    if outcome.is_found:
        return DiscoveryState.FOUND
    if elapsed >= timeout:
        return DiscoveryState.TIMED_OUT
    return DiscoveryState.POLLING


def completion_transition(run: Optional[CandidateRun], elapsed: float, timeout: float) -> CompletionState:
    if run is not None and run.is_terminal:
        return CompletionState.FAILED if run.is_failure else CompletionState.SUCCEEDED
    if elapsed >= timeout:
        return CompletionState.TIMED_OUT
    return CompletionState.POLLING


def warn_if_aggressive(name: str, schedule: PollSchedule) -> None:
    if schedule.timeout_seconds > 0 and schedule.interval_seconds < MIN_RECOMMENDED_INTERVAL_SECONDS:
        logger.warning(
            "poll_interval_below_recommended",
            extra={
                "loop": name,
                "interval_seconds": schedule.interval_seconds,
                "recommended_seconds": MIN_RECOMMENDED_INTERVAL_SECONDS,
            },
        )


class UrlDiscoveryLoop:
    """Polls the correlator until a run URL is known or the budget is spent."""

    def __init__(
        self,
        correlator: RunCorrelator,
        schedule: PollSchedule,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._correlator = correlator
        self._schedule = schedule
        self._clock = clock
        self._sleep = sleep
        self.polls = 0

    async def run(self) -> PollOutcome[str]:
        if self._schedule.timeout_seconds <= 0:
            return PollOutcome.timed_out()

        start = self._clock()
        while True:
            try:
                outcome = await self._correlator.correlate()
            except TransportError as e:
                logger.warning("workflow_url_poll_failed", extra={"error": e.message})
                outcome = PollOutcome.pending()
            self.polls += 1

            elapsed = self._clock() - start
            state = discovery_transition(outcome, elapsed, self._schedule.timeout_seconds)
            if state == DiscoveryState.FOUND:
                return PollOutcome.found(outcome.value.html_url)
            if state == DiscoveryState.TIMED_OUT:
                return PollOutcome.timed_out()
            await self._sleep(self._schedule.next_delay(elapsed))

    async def discover(self) -> str:
        """Run the loop; raises CorrelationTimeoutError when no run was correlated in time."""
        outcome = await self.run()
        if not outcome.is_found:
            raise CorrelationTimeoutError(
                f"No workflow run correlated within {self._schedule.timeout_seconds:g}s "
                f"({self.polls} polls)"
            )
        return outcome.value


class CompletionLoop:
    """
    Polls the pinned run until it reaches a terminal status or the budget is spent.
    Correlates first when no run is pinned yet. TransportError propagates.
    """

    def __init__(
        self,
        client: WorkflowClient,
        correlator: RunCorrelator,
        schedule: PollSchedule,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._correlator = correlator
        self._schedule = schedule
        self._clock = clock
        self._sleep = sleep

    async def _observe(self) -> Optional[CandidateRun]:
        pinned = self._correlator.pinned
        if pinned is None:
            # The listing row that pins the run is already fresh.
            outcome = await self._correlator.correlate()
            return outcome.value
        # Pinned from the discovery task, whose context changes do not reach this one.
        run_id_ctx.set(pinned.run_id)
        return await self._client.get_run(pinned.run_id)

    async def run(self) -> CompletionOutcome:
        if self._schedule.timeout_seconds <= 0:
            return CompletionOutcome(CompletionState.TIMED_OUT, self._correlator.pinned, 0)

        start = self._clock()
        polls = 0
        last_status: Optional[str] = None
        while True:
            run = await self._observe()
            polls += 1
            if run is not None and run.status != last_status:
                last_status = run.status
                logger.info(
                    "workflow_run_status",
                    extra={"run_id": run.run_id, "status": run.status, "conclusion": run.conclusion},
                )

            elapsed = self._clock() - start
            state = completion_transition(run, elapsed, self._schedule.timeout_seconds)
            if state != CompletionState.POLLING:
                return CompletionOutcome(state, run, polls)
            await self._sleep(self._schedule.next_delay(elapsed))
