"""
Shared pytest fixtures for the cadence test suite.

Governors under test run on a ``VirtualTimeline`` so every scenario is
deterministic: time only moves when a test calls ``advance``.
"""

import os
from unittest.mock import MagicMock

import pytest

from cadence.governor_config import clear_governor_configs
from cadence.logging_config import clear_context
from cadence.timing import VirtualTimeline


# ============================================================================
# Test Tier Configuration
# ============================================================================


def pytest_configure(config):
    """Register custom pytest markers.

    - unit: pure tests driven by a virtual clock
    - slow: tests that wait on a real event loop
    """
    config.addinivalue_line("markers", "unit: isolated unit tests with no real time involved")
    config.addinivalue_line("markers", "slow: tests that sleep on a real event loop")


# ============================================================================
# Global Test Setup
# ============================================================================


@pytest.fixture(autouse=True)
def reset_governor_registry():
    """Clear registered governor configs before and after each test."""
    clear_governor_configs()
    yield
    clear_governor_configs()


@pytest.fixture(autouse=True)
def reset_log_context():
    """Start every test with an empty log context."""
    clear_context()
    yield
    clear_context()


@pytest.fixture(autouse=True)
def no_wait_scale():
    """Keep CADENCE_WAIT_SCALE from leaking in from the environment."""
    old_value = os.environ.pop("CADENCE_WAIT_SCALE", None)
    yield
    os.environ.pop("CADENCE_WAIT_SCALE", None)
    if old_value is not None:
        os.environ["CADENCE_WAIT_SCALE"] = old_value


# ============================================================================
# Shared Fixtures
# ============================================================================


@pytest.fixture
def timeline():
    """A virtual clock and scheduler starting at t=0."""
    return VirtualTimeline()


@pytest.fixture
def func():
    """A mock callable returning a fixed result."""
    return MagicMock(return_value="result")
