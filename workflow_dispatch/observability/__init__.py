"""Observability layer: API usage metrics and failure classification. No external SaaS."""

from workflow_dispatch.observability.failure_classifier import FailureCategory, FailureClassifier
from workflow_dispatch.observability.metrics import MetricsCollector

__all__ = [
    "FailureCategory",
    "FailureClassifier",
    "MetricsCollector",
]
