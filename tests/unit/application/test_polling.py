"""Polling state machines: transitions, bounded polls, zero timeout, transport errors."""

import asyncio
from datetime import timedelta

import pytest

from fakes import ACTOR, BRANCH, DISPATCHED_AT, FakeWorkflowClient, make_run
from workflow_dispatch.application.correlator import RunCorrelator
from workflow_dispatch.application.exceptions import CorrelationTimeoutError, TransportError
from workflow_dispatch.application.polling import (
    CompletionLoop,
    CompletionState,
    DiscoveryState,
    PollSchedule,
    UrlDiscoveryLoop,
    completion_transition,
    discovery_transition,
)
from workflow_dispatch.core.context import run_id_ctx
from workflow_dispatch.domain.models.run import PollOutcome, PollStatus


def _correlator(client):
    return RunCorrelator(
        client,
        "42",
        actor=ACTOR,
        branch=BRANCH,
        dispatched_at_utc=DISPATCHED_AT,
        tolerance=timedelta(seconds=5),
    )


def _completion(client, clock, timeout=60, interval=10):
    return CompletionLoop(
        client,
        _correlator(client),
        PollSchedule(interval_seconds=interval, timeout_seconds=timeout),
        clock=clock,
        sleep=clock.sleep,
    )


def _discovery(client, clock, timeout=60, interval=10):
    return UrlDiscoveryLoop(
        _correlator(client),
        PollSchedule(interval_seconds=interval, timeout_seconds=timeout),
        clock=clock,
        sleep=clock.sleep,
    )


# --- pure transitions ---


def test_discovery_transition():
    found = PollOutcome.found(make_run())
    assert discovery_transition(found, elapsed=0, timeout=10) == DiscoveryState.FOUND
    assert discovery_transition(found, elapsed=99, timeout=10) == DiscoveryState.FOUND
    assert discovery_transition(PollOutcome.pending(), elapsed=5, timeout=10) == DiscoveryState.POLLING
    assert discovery_transition(PollOutcome.pending(), elapsed=10, timeout=10) == DiscoveryState.TIMED_OUT


def test_completion_transition_non_terminal_and_missing():
    assert completion_transition(None, elapsed=0, timeout=10) == CompletionState.POLLING
    assert completion_transition(make_run(status="queued"), elapsed=1, timeout=10) == CompletionState.POLLING
    assert completion_transition(None, elapsed=10, timeout=10) == CompletionState.TIMED_OUT
    assert completion_transition(make_run(status="in_progress"), elapsed=11, timeout=10) == CompletionState.TIMED_OUT


def test_completion_transition_terminal_wins_over_timeout():
    done = make_run(status="completed", conclusion="success")
    assert completion_transition(done, elapsed=100, timeout=10) == CompletionState.SUCCEEDED


def test_poll_schedule_rejects_negative_values():
    with pytest.raises(ValueError):
        PollSchedule(interval_seconds=-1, timeout_seconds=10)


# --- completion loop ---


@pytest.mark.asyncio
@pytest.mark.parametrize("conclusion", ["success", "skipped", "neutral", "action_required", "stale", None])
async def test_completion_non_failing_conclusions_succeed(clock, conclusion):
    client = FakeWorkflowClient(
        listings=[[make_run()]],
        run_states=[make_run(status="completed", conclusion=conclusion)],
    )
    outcome = await _completion(client, clock).run()
    assert outcome.state == CompletionState.SUCCEEDED
    assert outcome.conclusion == conclusion


@pytest.mark.asyncio
@pytest.mark.parametrize("conclusion", ["failure", "cancelled", "timed_out"])
async def test_completion_failing_conclusions_fail(clock, conclusion):
    client = FakeWorkflowClient(
        listings=[[make_run()]],
        run_states=[make_run(status="completed", conclusion=conclusion)],
    )
    outcome = await _completion(client, clock).run()
    assert outcome.state == CompletionState.FAILED
    assert outcome.conclusion == conclusion


@pytest.mark.asyncio
async def test_completion_polls_pinned_run_directly(clock):
    client = FakeWorkflowClient(
        listings=[[], [make_run(run_id=55, status="queued")]],
        run_states=[
            make_run(run_id=55, status="in_progress"),
            make_run(run_id=55, status="completed", conclusion="success"),
        ],
    )
    outcome = await _completion(client, clock).run()
    assert outcome.state == CompletionState.SUCCEEDED
    assert outcome.polls == 4
    assert len(client.list_calls) == 2
    assert client.get_calls == [55, 55]
    assert clock.sleeps == [10, 10, 10]


@pytest.mark.asyncio
async def test_completion_never_terminal_times_out_in_bounded_polls(clock):
    client = FakeWorkflowClient(listings=[[make_run()]], run_states=[make_run(status="in_progress")])
    outcome = await _completion(client, clock, timeout=60, interval=10).run()
    assert outcome.state == CompletionState.TIMED_OUT
    assert outcome.conclusion is None
    assert abs(outcome.polls - 60 / 10) <= 1


@pytest.mark.asyncio
async def test_completion_never_correlated_times_out(clock):
    client = FakeWorkflowClient(listings=[[]])
    outcome = await _completion(client, clock, timeout=30, interval=10).run()
    assert outcome.state == CompletionState.TIMED_OUT
    assert outcome.run is None
    assert abs(outcome.polls - 3) <= 1
    assert client.get_calls == []


@pytest.mark.asyncio
async def test_completion_zero_timeout_performs_no_polls(clock):
    client = FakeWorkflowClient(listings=[[make_run(status="completed", conclusion="success")]])
    outcome = await _completion(client, clock, timeout=0).run()
    assert outcome.state == CompletionState.TIMED_OUT
    assert outcome.polls == 0
    assert client.list_calls == []


@pytest.mark.asyncio
async def test_completion_transport_error_propagates(clock):
    client = FakeWorkflowClient(
        listings=[[make_run()]],
        run_states=[TransportError("rate limited", status_code=403)],
    )
    with pytest.raises(TransportError, match="rate limited"):
        await _completion(client, clock).run()


# --- URL discovery loop ---


@pytest.mark.asyncio
async def test_discovery_zero_timeout_performs_no_polls(clock):
    client = FakeWorkflowClient(listings=[[make_run()]])
    loop = _discovery(client, clock, timeout=0)
    outcome = await loop.run()
    assert outcome.status == PollStatus.TIMED_OUT
    assert outcome.value is None
    assert loop.polls == 0
    assert client.list_calls == []


@pytest.mark.asyncio
async def test_discovery_finds_url_after_pending_polls(clock):
    run = make_run(run_id=77)
    client = FakeWorkflowClient(listings=[[], [], [run]])
    loop = _discovery(client, clock)
    outcome = await loop.run()
    assert outcome.is_found
    assert outcome.value == run.html_url
    assert loop.polls == 3
    assert clock.sleeps == [10, 10]


@pytest.mark.asyncio
async def test_discovery_swallows_transport_errors(clock):
    run = make_run()
    client = FakeWorkflowClient(listings=[TransportError("boom"), [run]])
    outcome = await _discovery(client, clock).run()
    assert outcome.value == run.html_url


@pytest.mark.asyncio
async def test_discovery_times_out_without_raising_from_run(clock):
    client = FakeWorkflowClient(listings=[[]])
    loop = _discovery(client, clock, timeout=30, interval=10)
    outcome = await loop.run()
    assert outcome.status == PollStatus.TIMED_OUT
    assert abs(loop.polls - 3) <= 1


@pytest.mark.asyncio
async def test_discover_raises_correlation_timeout(clock):
    client = FakeWorkflowClient(listings=[[]])
    with pytest.raises(CorrelationTimeoutError):
        await _discovery(client, clock, timeout=20, interval=10).discover()


# --- timeout budget ---


def test_next_delay_is_capped_by_remaining_budget():
    schedule = PollSchedule(interval_seconds=60, timeout_seconds=90)
    assert schedule.next_delay(0) == 60
    assert schedule.next_delay(60) == 30
    assert schedule.next_delay(90) == 0
    assert schedule.next_delay(120) == 0


@pytest.mark.asyncio
async def test_completion_interval_longer_than_timeout_stops_at_timeout(clock):
    client = FakeWorkflowClient(listings=[[make_run()]], run_states=[make_run(status="in_progress")])
    outcome = await _completion(client, clock, timeout=10, interval=60).run()
    assert outcome.state == CompletionState.TIMED_OUT
    assert outcome.polls == 2
    assert clock.sleeps == [10]
    assert clock.now <= 10


@pytest.mark.asyncio
async def test_completion_last_sleep_shortened_to_remaining_budget(clock):
    client = FakeWorkflowClient(listings=[[make_run()]], run_states=[make_run(status="in_progress")])
    outcome = await _completion(client, clock, timeout=25, interval=10).run()
    assert outcome.state == CompletionState.TIMED_OUT
    assert clock.sleeps == [10, 10, 5]
    assert clock.now == 25


@pytest.mark.asyncio
async def test_discovery_interval_longer_than_timeout_stops_at_timeout(clock):
    client = FakeWorkflowClient(listings=[[]])
    loop = _discovery(client, clock, timeout=10, interval=60)
    outcome = await loop.run()
    assert outcome.status == PollStatus.TIMED_OUT
    assert loop.polls == 2
    assert clock.sleeps == [10]
    assert clock.now <= 10


@pytest.mark.asyncio
async def test_completion_carries_run_id_pinned_by_another_task(clock):
    client = FakeWorkflowClient(
        listings=[[make_run(run_id=321)]],
        run_states=[make_run(run_id=321, status="completed", conclusion="success")],
    )
    correlator = _correlator(client)
    await asyncio.create_task(correlator.correlate())
    assert run_id_ctx.get() is None

    loop = CompletionLoop(
        client, correlator, PollSchedule(interval_seconds=10, timeout_seconds=60), clock=clock, sleep=clock.sleep
    )
    outcome = await loop.run()
    assert outcome.state == CompletionState.SUCCEEDED
    assert run_id_ctx.get() == 321
