"""Domain-specific exceptions. Pure domain layer, no network or configuration."""


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidDurationFormatError(DomainError):
    """Raised when an interval/timeout string is not <integer><s|m|h>."""


class InvalidDispatchRequestError(DomainError):
    """Raised when a dispatch request is missing its workflow, repository or ref."""
