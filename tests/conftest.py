"""Pytest configuration and fixtures."""

import os
import tempfile

# Must run before anything imports config.
_TEST_ROOT = tempfile.mkdtemp(prefix="vesper-tests-")
os.environ["VESPER_DATA_DIR"] = os.path.join(_TEST_ROOT, "data")
os.environ["VESPER_LOGS_DIR"] = os.path.join(_TEST_ROOT, "logs")
os.environ["BRAVE_API_KEY"] = ""
os.environ["REMOTE_API_KEY"] = ""
os.environ["NOTES_VAULT_PATH"] = ""
os.environ["WEATHER_LOCATION"] = "Prague"
os.environ["LOG_LEVEL"] = "DEBUG"

from datetime import datetime  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402


@pytest.fixture
def fixed_now():
    """Wednesday 2026-01-21 10:30, ISO week 2026-W04."""
    return datetime(2026, 1, 21, 10, 30, 0)


@pytest.fixture
def engine():
    """A BaseEngine double whose chat() returns a canned answer."""
    mock = MagicMock()
    mock.get_name.return_value = "mock"
    mock.chat.return_value = "The answer."
    return mock


@pytest.fixture
def vault(tmp_path):
    """An empty notes vault directory."""
    path = tmp_path / "vault"
    path.mkdir()
    return path
