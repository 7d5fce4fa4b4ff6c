"""Trigger a GitHub Actions workflow_dispatch run, correlate it, and wait for its conclusion."""

__version__ = "0.1.0"
