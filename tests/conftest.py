"""Shared test fixtures and configuration."""

from __future__ import annotations

import pytest
from unittest.mock import MagicMock

from niblet_assistant.config import Settings
from niblet_assistant.run_state import RunStateRegistry

from tests.helpers import FakeClock, make_openai_client


@pytest.fixture
def mock_settings():
    """Settings with a test API key, isolated from the environment's .env."""
    return Settings(_env_file=None, OPENAI_API_KEY="sk-test")


@pytest.fixture
def clock():
    """Simulated monotonic clock; its sleep advances time instead of waiting."""
    return FakeClock()


@pytest.fixture
def registry(clock):
    """Run state registry on the simulated clock."""
    return RunStateRegistry(clock=clock, sleep=clock.sleep)


@pytest.fixture
def openai_client():
    """Mock AsyncOpenAI client with happy-path defaults."""
    return make_openai_client()


@pytest.fixture
def mock_firestore_client():
    """Create a mock Firestore client."""
    client = MagicMock()
    return client
