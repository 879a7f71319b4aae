"""Fixtures and configuration for pytest."""

import pytest
from loguru import logger


@pytest.fixture
def log_warnings():
    """Collect the messages of warnings logged during a test"""
    messages = []
    handler_id = logger.add(messages.append, level='WARNING', format='{message}')
    yield messages
    logger.remove(handler_id)
