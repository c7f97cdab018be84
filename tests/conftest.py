"""
Global pytest fixtures for the LinkLens Analytics test suite.

Responsibilities:
    - Provide a fresh FastAPI TestClient via the app factory for integration tests
    - Provide an AnalyticsManager for pipeline tests
    - Provide a `make_log` factory that builds AccessLog rows with sane defaults

Notes:
    The default timestamp is Tuesday 2025-03-04 10:00 UTC, so day/hour
    assertions stay deterministic regardless of when the suite runs.

LLM Prompt Example:
    "Show how to structure pytest fixtures that build realistic input records
    with overridable defaults for a pure analytics library."
"""

import itertools
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from main import create_app
from linklens.manager.analytics_manager import AnalyticsManager
from linklens.models import AccessLog

BASE_TIME = datetime(2025, 3, 4, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def client() -> TestClient:
    """Fresh TestClient with a new app instance."""
    return TestClient(create_app())


@pytest.fixture
def manager() -> AnalyticsManager:
    return AnalyticsManager()


@pytest.fixture
def make_log():
    """
    Factory for AccessLog rows.

    Every call gets a unique `id`; keyword arguments override any field.

    LLM Prompt Example:
        "Demonstrate a factory fixture that keeps test data terse while
        still producing fully validated models."
    """
    ids = itertools.count(1)

    def _make(**overrides) -> AccessLog:
        data = {"id": f"log-{next(ids)}", "accessed_at": BASE_TIME}
        data.update(overrides)
        return AccessLog(**data)

    return _make
