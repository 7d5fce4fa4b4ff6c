"""Fixtures for application tests: in-memory workflow client, fake clock and sleep."""

import pytest

from fakes import FakeClock, FakeWorkflowClient


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client():
    return FakeWorkflowClient()
