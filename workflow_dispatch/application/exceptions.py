"""Application-layer exceptions. Do not reuse domain exceptions."""

from typing import Optional

from workflow_dispatch.domain.models.run import InvocationResult


class ApplicationError(Exception):
    """
    Base for all application-layer errors. partial_result carries what an invocation
    had learned (workflow id, run id, URL) when the error aborted it after dispatch.
    """

    partial_result: Optional[InvocationResult] = None

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TransportError(ApplicationError):
    """Raised when the remote API call fails (connectivity, auth, rate limit, unexpected status)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class WorkflowNotFoundError(ApplicationError):
    """Raised when the workflow reference matches no workflow id, name or file in the repository."""


class CorrelationTimeoutError(ApplicationError):
    """Raised when URL discovery exhausts its budget without correlating a run. Non-fatal."""


class CompletionTimeoutError(ApplicationError):
    """Raised when the run does not reach a terminal state within the completion budget."""


class WorkflowFailedError(ApplicationError):
    """Raised when the run concludes with failure, cancelled or timed_out."""

    def __init__(self, message: str, conclusion: Optional[str] = None, run_id: Optional[int] = None) -> None:
        self.conclusion = conclusion
        self.run_id = run_id
        super().__init__(message)
