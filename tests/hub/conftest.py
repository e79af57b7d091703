"""Fixtures compartidas para los tests del Relay Hub."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketState


def make_websocket(state: WebSocketState = WebSocketState.CONNECTED):
    websocket = MagicMock()
    websocket.application_state = state
    websocket.send_text = AsyncMock()
    return websocket


@pytest.fixture
def websocket_factory():
    """Fixture que crea websockets de servidor simulados."""
    return make_websocket
