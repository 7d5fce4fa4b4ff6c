"""Failure categorization for the final log line and metrics. Maps exceptions to taxonomy."""

from enum import Enum

from pydantic import ValidationError

from workflow_dispatch.application.exceptions import (
    CompletionTimeoutError,
    TransportError,
    WorkflowFailedError,
    WorkflowNotFoundError,
)
from workflow_dispatch.domain.exceptions import DomainError


class FailureCategory(str, Enum):
    """Taxonomy for failure classification."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    WORKFLOW_FAILED = "WORKFLOW_FAILED"
    TIMEOUT = "TIMEOUT"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class FailureClassifier:
    """
    Classifies exceptions into FailureCategory. Caller increments metrics and logs.
    """

    @staticmethod
    def classify(exception: BaseException) -> FailureCategory:
        """Map exception to FailureCategory. Unknown -> UNEXPECTED_ERROR."""
        if isinstance(exception, (DomainError, ValidationError, WorkflowNotFoundError)):
            return FailureCategory.CONFIGURATION_ERROR
        if isinstance(exception, TransportError):
            return FailureCategory.TRANSPORT_ERROR
        if isinstance(exception, WorkflowFailedError):
            return FailureCategory.WORKFLOW_FAILED
        if isinstance(exception, CompletionTimeoutError):
            return FailureCategory.TIMEOUT
        return FailureCategory.UNEXPECTED_ERROR
