# Application layer: services that orchestrate domain and the remote workflow client.

from workflow_dispatch.application.correlator import RunCorrelator, select_run
from workflow_dispatch.application.dispatch_service import (
    DispatchService,
    DispatchTarget,
    InvocationOptions,
)
from workflow_dispatch.application.exceptions import (
    ApplicationError,
    CompletionTimeoutError,
    CorrelationTimeoutError,
    TransportError,
    WorkflowFailedError,
    WorkflowNotFoundError,
)
from workflow_dispatch.application.polling import (
    CompletionLoop,
    CompletionOutcome,
    CompletionState,
    DiscoveryState,
    PollSchedule,
    UrlDiscoveryLoop,
)

__all__ = [
    "DispatchService",
    "DispatchTarget",
    "InvocationOptions",
    "RunCorrelator",
    "select_run",
    "CompletionLoop",
    "CompletionOutcome",
    "CompletionState",
    "DiscoveryState",
    "PollSchedule",
    "UrlDiscoveryLoop",
    "ApplicationError",
    "CompletionTimeoutError",
    "CorrelationTimeoutError",
    "TransportError",
    "WorkflowFailedError",
    "WorkflowNotFoundError",
]
