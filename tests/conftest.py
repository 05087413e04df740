"""Pytest configuration and shared fixtures for Album BPM Updater.

This module configures the test environment by ensuring the project root
and the ``src`` directory are on sys.path, allowing imports of both the
application packages and ``tests.*`` helpers.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
for path in (PROJECT_ROOT, PROJECT_ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from core.models.track_models import BpmConfig  # noqa: E402
from tests.mocks.scheduler_mock import ManualScheduler  # noqa: E402


@pytest.fixture
def mock_console_logger() -> MagicMock:
    """Mock console logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def mock_error_logger() -> MagicMock:
    """Mock error logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def bpm_config() -> BpmConfig:
    """Default BPM settings."""
    return BpmConfig()


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    """Repeating scheduler driven explicitly by the test."""
    return ManualScheduler()
