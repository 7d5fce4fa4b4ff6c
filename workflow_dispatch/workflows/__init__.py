# Remote workflow client contract.

from workflow_dispatch.workflows.interface import WorkflowClient

__all__ = [
    "WorkflowClient",
]
