"""Fixtures compartidas para los tests del Relay Link."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from websockets.exceptions import ConnectionClosedError


class FakeWebSocket:
    """WebSocket de cliente simulado.

    ``feed`` entrega mensajes al listener y ``drop`` simula un cierre
    inesperado de la conexión.
    """

    def __init__(self):
        self.send = AsyncMock()
        self.close = AsyncMock()
        self._incoming = asyncio.Queue()

    def feed(self, raw: str):
        self._incoming.put_nowait(raw)

    def drop(self):
        self._incoming.put_nowait(ConnectionClosedError(None, None))

    def sent_json(self):
        return [call.args[0] for call in self.send.await_args_list]

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_ws():
    """Fixture que crea un websocket simulado."""
    return FakeWebSocket()


@pytest.fixture
def fake_ws_factory():
    """Fixture que crea websockets simulados bajo demanda."""
    return FakeWebSocket
