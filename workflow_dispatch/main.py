# workflow_dispatch/main.py

import asyncio
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from workflow_dispatch.application.dispatch_service import DispatchService
from workflow_dispatch.application.exceptions import ApplicationError
from workflow_dispatch.config.logging import configure_logging
from workflow_dispatch.config.settings import ActionSettings, get_settings
from workflow_dispatch.domain.models.run import InvocationResult
from workflow_dispatch.infrastructure.github.client import ClientCredentials, GitHubWorkflowClient
from workflow_dispatch.infrastructure.outputs import ActionOutputWriter, result_outputs
from workflow_dispatch.observability.failure_classifier import FailureClassifier
from workflow_dispatch.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)


async def run_action(
    settings: ActionSettings,
    *,
    metrics: Optional[MetricsCollector] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> InvocationResult:
    """Build the client and service from settings, run one invocation, publish outputs."""
    # Duration parsing fails here, before any network call.
    options = settings.invocation_options()
    target = settings.dispatch_target()
    credentials = ClientCredentials(
        token=settings.token,
        owner=target.repo_owner,
        repo=target.repo_name,
        api_url=settings.github_api_url,
    )
    writer = ActionOutputWriter(settings.github_output)
    async with GitHubWorkflowClient(credentials, metrics=metrics, transport=transport) as client:
        service = DispatchService(client=client, logger=logging.getLogger("workflow_dispatch.service"))
        try:
            result = await service.run(target, options)
        except ApplicationError as e:
            # Publish what was learned before the invocation aborted.
            if e.partial_result is not None:
                writer.write(result_outputs(e.partial_result))
            raise

    writer.write(result_outputs(result))
    return result


def main() -> int:
    """Console entry point. Exit code 0 only when the invocation succeeded."""
    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging("ERROR")
        logger.error(
            "invalid_configuration",
            extra={"failure_category": FailureClassifier.classify(e).value, "errors": e.errors()},
        )
        return 1
    configure_logging(settings.log_level)

    metrics = MetricsCollector()
    try:
        result = asyncio.run(run_action(settings, metrics=metrics))
        result.raise_for_failure()
    except Exception as e:
        category = FailureClassifier.classify(e)
        metrics.increment("failure_count", 1, category=category.value)
        logger.error(
            "invocation_failed",
            extra={"failure_category": category.value, "error": str(e)},
        )
        return 1
    finally:
        logger.info("api_usage", extra=metrics.api_usage())
    return 0 if result.succeeded else 1
