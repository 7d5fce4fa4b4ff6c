"""API usage accounting for one invocation. Thread-safe, in-memory, reported in the final log line."""

import threading
from typing import Any

# Key for observations recorded without an operation or category label.
UNLABELLED = "all"


class MetricsCollector:
    """
    Counters and latency summaries keyed by metric name, then by a single label
    (operation for API calls, category for failures).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, dict[str, float]] = {}
        self._latencies: dict[str, dict[str, list[float]]] = {}

    def increment(
        self,
        name: str,
        value: float = 1.0,
        *,
        operation: str | None = None,
        category: str | None = None,
    ) -> None:
        label = operation or category or UNLABELLED
        with self._lock:
            counter = self._counters.setdefault(name, {})
            counter[label] = counter.get(label, 0) + value

    def observe_latency(self, name: str, latency_ms: float, *, operation: str | None = None) -> None:
        with self._lock:
            series = self._latencies.setdefault(name, {})
            series.setdefault(operation or UNLABELLED, []).append(latency_ms)

    def total(self, name: str) -> float:
        """Sum of a counter across all of its labels."""
        with self._lock:
            return sum(self._counters.get(name, {}).values())

    def export_metrics(self) -> dict[str, Any]:
        """
        Snapshot as plain dicts:
        {"counters": {name: {label: value}},
         "latency_ms": {name: {label: {"count", "sum", "max"}}}}
        """
        with self._lock:
            return {
                "counters": {name: dict(labels) for name, labels in self._counters.items()},
                "latency_ms": {
                    name: {
                        label: {
                            "count": len(values),
                            "sum": round(sum(values), 3),
                            "max": round(max(values), 3),
                        }
                        for label, values in series.items()
                    }
                    for name, series in self._latencies.items()
                },
            }

    def api_usage(self) -> dict[str, Any]:
        """Per-operation GitHub API calls, errors and latency for the api_usage log line."""
        exported = self.export_metrics()
        return {
            "api_calls": self.total("api_call_count"),
            "api_errors": self.total("api_error_count"),
            "api_calls_by_operation": exported["counters"].get("api_call_count", {}),
            "api_errors_by_operation": exported["counters"].get("api_error_count", {}),
            "api_latency_ms_by_operation": exported["latency_ms"].get("api_call_latency_ms", {}),
        }
