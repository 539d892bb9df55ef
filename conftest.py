"""
Root pytest configuration.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from cwtransport.core.destination import Destination
from cwtransport.testing import FakeLogsClient, ManualClock


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics_cache() -> Generator[None, None, None]:
    """Reset the diagnostics module cache and writer around each test.

    The diagnostics module caches ``internal_logging_enabled`` on first use
    and keeps rate-limit state; tests must not inherit either.
    """
    import cwtransport.core.diagnostics as diag

    diag._internal_logging_enabled = None
    diag._last_emitted.clear()
    diag.set_writer_for_tests(None)
    yield
    diag._internal_logging_enabled = None
    diag._last_emitted.clear()
    diag.set_writer_for_tests(None)


@pytest.fixture
def captured_diagnostics() -> list[dict[str, Any]]:
    """Enable diagnostics and collect every payload instead of writing it."""
    import cwtransport.core.diagnostics as diag

    captured: list[dict[str, Any]] = []
    diag.configure(enabled=True)
    diag.set_writer_for_tests(captured.append)
    return captured


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def client(clock: ManualClock) -> FakeLogsClient:
    fake = FakeLogsClient(clock=clock)
    fake.seed_stream("app", "errors")
    return fake


@pytest.fixture
def destination(client: FakeLogsClient) -> Destination:
    return Destination(client, "app", "errors")
