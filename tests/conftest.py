"""Pytest configuration for the wsrecovery test suite."""

from __future__ import annotations

import pytest


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used across the suite."""
    config.addinivalue_line(
        "markers",
        "integration: tests that drive the full service over a real workspace directory",
    )
