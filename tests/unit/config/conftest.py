"""Fixtures for configuration tests: isolated environment, no .env file."""

import os

import pytest

from workflow_dispatch.config.settings import get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Remove runner variables so tests only see what they set; run from an empty directory."""
    for name in list(os.environ):
        if name.upper().startswith(("INPUT_", "GITHUB_")) or name.upper() in ("LOG_LEVEL", "CLOCK_SKEW_TOLERANCE_SECONDS"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def runner_env(monkeypatch):
    """Minimal environment of an Actions runner invoking the action."""
    values = {
        "INPUT_WORKFLOW": "deploy.yml",
        "INPUT_TOKEN": "ghp_secret",
        "GITHUB_ACTOR": "octocat",
        "GITHUB_REPOSITORY": "acme/app",
        "GITHUB_REF": "refs/heads/main",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values
