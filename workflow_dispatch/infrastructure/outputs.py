# workflow_dispatch/infrastructure/outputs.py

import logging
from pathlib import Path
from typing import Dict, Optional

from workflow_dispatch.domain.models.run import InvocationResult

logger = logging.getLogger(__name__)


def result_outputs(result: InvocationResult) -> Dict[str, str]:
    """Action outputs for a result. Absent values are left out."""
    outputs = {
        "workflow-id": result.workflow_id,
        "workflow-run-id": result.run_id,
        "workflow-url": result.workflow_url,
        "workflow-conclusion": result.conclusion,
    }
    return {name: str(value) for name, value in outputs.items() if value is not None}


class ActionOutputWriter:
    """Appends name=value lines to the runner's GITHUB_OUTPUT file. Logs only when unset."""

    def __init__(self, output_path: Optional[str]) -> None:
        self._path = Path(output_path) if output_path else None

    def write(self, outputs: Dict[str, str]) -> None:
        for name, value in outputs.items():
            if "\n" in value or "\r" in value:
                raise ValueError(f"Output {name} must be a single line")
        logger.info("action_outputs", extra={"outputs": outputs})
        if self._path is None:
            return
        with self._path.open("a", encoding="utf-8") as f:
            for name, value in outputs.items():
                f.write(f"{name}={value}\n")
