"""GitHub Actions REST client: dispatch, run listing, run lookup."""

from workflow_dispatch.infrastructure.github.client import ClientCredentials, GitHubWorkflowClient

__all__ = [
    "ClientCredentials",
    "GitHubWorkflowClient",
]
