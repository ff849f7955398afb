"""Pytest configuration for Monitored Microservice tests.

This module configures pytest to:
1. Load .env.test file before running tests (Loki push disabled)
2. Provide an app wired with a recording logger and deterministic randomness
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient

FIXED_NOW = datetime(2024, 2, 28, 23, 30, tzinfo=timezone.utc)


def pytest_configure(config):
    """Load .env.test before running any tests.

    Settings are read at import time, so the test environment must be in
    place before any ``monitored`` module is imported.
    """
    project_root = Path(__file__).parent.parent
    env_test_path = project_root / ".env.test"

    if env_test_path.exists():
        load_dotenv(env_test_path, override=True)


class RecordingHandler(logging.Handler):
    """Keep emitted records in memory."""

    def __init__(self):
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def recorder():
    return RecordingHandler()


@pytest.fixture
def logger(recorder):
    """Service logger that records every event."""
    test_logger = logging.Logger("monitored-test", level=logging.DEBUG)
    test_logger.addHandler(recorder)
    return test_logger


@pytest.fixture
def app(logger):
    from monitored.config import Settings
    from monitored.main import create_app

    return create_app(
        settings=Settings(loki_enabled=False),
        logger=logger,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def fixed_now():
    """Clock value used by the ``app`` fixture (UTC, day before a leap day)."""
    return FIXED_NOW
