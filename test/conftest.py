"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from claude_code_flatten.diagnostics import RecordingDiagnostics


@pytest.fixture
def test_data_dir() -> Path:
    """Return path to test data directory."""
    return Path(__file__).parent / "test_data"


@pytest.fixture
def diagnostics() -> RecordingDiagnostics:
    """Sink that keeps every reported event for assertions."""
    return RecordingDiagnostics()
