"""Shared test fixtures for the tax calendar test suite."""

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def reset_loguru_sinks():
    """Drop sinks added by setup_logging; they hold pytest's captured stderr."""
    yield
    logger.remove()
