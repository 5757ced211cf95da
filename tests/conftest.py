"""
Pytest configuration and fixtures for the chatstream test suite.
"""

import pytest

from chatstream.core.config_manager import StreamConfig
from chatstream.services.formatter import MessageFormatter
from chatstream.services.streaming import StreamingMessageProcessor
from tests.test_utils import RecordingCallbacks


@pytest.fixture
def formatter() -> MessageFormatter:
    return MessageFormatter()


@pytest.fixture
def callbacks() -> RecordingCallbacks:
    return RecordingCallbacks()


@pytest.fixture
def fast_config() -> StreamConfig:
    """Short timeout and no backoff delay so failure paths finish quickly."""
    return StreamConfig(timeout_seconds=0.2, retry_base_delay=0.0, retry_max_delay=0.0)


@pytest.fixture
def processor(callbacks, fast_config) -> StreamingMessageProcessor:
    return StreamingMessageProcessor(
        callbacks.on_update,
        callbacks.on_error,
        callbacks.on_complete,
        config=fast_config
    )
