import logging
from unittest.mock import AsyncMock

import pytest
from fastapi import WebSocket
from starlette.websockets import WebSocketState

from relay.config.settings import RelaySettings


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture
def settings():
    """Relay settings pointing at local test endpoints."""
    return RelaySettings(
        hume_ws_url="wss://hume.test/v0/evi/chat",
        hume_api_key="test-hume-key",
        webhook_speak_url="https://speak.test/webhooks/speak",
        port=3001,
    )


@pytest.fixture
def mock_websocket():
    """Create a mock Telnyx WebSocket with no query string and no client address."""
    websocket = AsyncMock(spec=WebSocket)
    websocket.query_params = {}
    websocket.client = None
    websocket.application_state = WebSocketState.CONNECTED
    return websocket
