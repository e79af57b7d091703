"""Tests para el Transport Adapter OSC/UDP."""

import asyncio
import logging
import socket
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from core.entities.control_message import ControlMessage
from core.errors import PortUnavailable
from modules.oscrelay_transport import OSCEventLogger, OSCTransport, encode


async def _wait_for(predicate, timeout: float = 2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condición no alcanzada a tiempo")
        await asyncio.sleep(0.01)


class TestOSCTransport:
    """Tests para OSCTransport."""

    @pytest_asyncio.fixture
    async def transport(self):
        transport = OSCTransport(host="127.0.0.1")
        yield transport
        transport.close()

    @pytest.mark.asyncio
    async def test_receive_dispatches_control_message(self, transport):
        """Test datagrama recibido llega a los handlers como ControlMessage."""
        received = []
        transport.on_message(received.append)
        port = await transport.create_receiver(0)

        assert transport.send(port, "/avatar/parameters/Voice", 0.75) is True
        await _wait_for(lambda: received)

        message = received[0]
        assert isinstance(message, ControlMessage)
        assert message.address == "/avatar/parameters/Voice"
        assert message.args == (0.75,)
        assert message.source == "127.0.0.1"
        assert message.relayed is False

    @pytest.mark.asyncio
    async def test_multiple_handlers(self, transport):
        first, second = [], []
        transport.on_message(first.append)
        transport.on_message(second.append)
        port = await transport.create_receiver(0)

        transport.send(port, "/x", 1)
        await _wait_for(lambda: first and second)

    @pytest.mark.asyncio
    async def test_handler_false_suppresses_console_line(self, transport, caplog):
        """Test handler que retorna False suprime el log de consola."""
        received = []

        def handler(message):
            received.append(message)
            return False

        transport.on_message(handler)
        port = await transport.create_receiver(0)

        with caplog.at_level(logging.INFO):
            transport.send(port, "/hidden", 1)
            await _wait_for(lambda: received)

        assert "Received OSC: /hidden" not in caplog.text

    @pytest.mark.asyncio
    async def test_incoming_line_logged(self, transport, caplog):
        received = []
        transport.on_message(received.append)
        port = await transport.create_receiver(0)

        with caplog.at_level(logging.INFO):
            transport.send(port, "/shown", 1, 2)
            await _wait_for(lambda: received)

        assert "Received OSC: /shown | [1, 2]" in caplog.text

    @pytest.mark.asyncio
    async def test_handler_exception_does_not_stop_dispatch(self, transport):
        received = []

        def broken(message):
            raise RuntimeError("boom")

        transport.on_message(broken)
        transport.on_message(received.append)
        port = await transport.create_receiver(0)

        transport.send(port, "/x", 1)
        await _wait_for(lambda: received)

    @pytest.mark.asyncio
    async def test_malformed_datagram_dropped(self, transport):
        """Test datagrama inválido se descarta sin romper el receptor."""
        received = []
        transport.on_message(received.append)
        port = await transport.create_receiver(0)

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.sendto(b"garbage", ("127.0.0.1", port))
            sock.sendto(encode("/ok", [1]), ("127.0.0.1", port))
        finally:
            sock.close()

        await _wait_for(lambda: received)
        assert [m.address for m in received] == ["/ok"]

    @pytest.mark.asyncio
    async def test_port_in_use_raises_port_unavailable(self, transport):
        """Test puerto ocupado lanza PortUnavailable sin probar otros puertos."""
        blocker = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        blocker.bind(("127.0.0.1", 0))
        port = blocker.getsockname()[1]

        try:
            with pytest.raises(PortUnavailable) as exc_info:
                await transport.create_receiver(port)
        finally:
            blocker.close()

        assert exc_info.value.port == port
        assert transport.receivers == {}

    def test_send_without_port_is_noop(self, transport, caplog):
        """Test puerto no configurado retorna False sin lanzar."""
        with caplog.at_level(logging.ERROR):
            assert transport.send(None, "/x", 1) is False
            assert transport.send(0, "/x", 1) is False

        assert "no configurado" in caplog.text
        assert transport.senders == {}

    def test_sender_cached_per_port(self, transport):
        transport.send(9, "/x", 1)
        sender = transport.senders[9]
        transport.send(9, "/y", 2)

        assert transport.senders[9] is sender

    def test_send_unencodable_returns_false(self, transport):
        assert transport.send(9, "/x", object()) is False

    def test_send_os_error_returns_false(self, transport):
        sender = MagicMock()
        sender.send.side_effect = OSError("network down")
        transport.senders[9] = sender

        assert transport.send(9, "/x", 1) is False

    @pytest.mark.asyncio
    async def test_event_logger_records_traffic(self, tmp_path):
        event_logger = OSCEventLogger(tmp_path)
        transport = OSCTransport(event_logger=event_logger)
        received = []
        transport.on_message(received.append)

        try:
            port = await transport.create_receiver(0)
            transport.send(port, "/x", 1)
            await _wait_for(lambda: received)
        finally:
            transport.close()

        assert event_logger.events_written == 2

    @pytest.mark.asyncio
    async def test_close_releases_receivers(self, transport):
        await transport.create_receiver(0)
        transport.close()

        assert transport.receivers == {}
        assert transport.senders == {}

    def test_close_closes_sender_sockets(self, transport):
        """Test close cierra el socket de cada emisor cacheado."""
        first = MagicMock()
        second = MagicMock()
        second.close.side_effect = OSError("already closed")
        transport.senders = {9000: first, 9100: second}

        transport.close()

        first.close.assert_called_once()
        second.close.assert_called_once()
        assert transport.senders == {}

    def test_close_real_sender(self, transport):
        sender = transport.create_sender(9000)

        transport.close()

        assert sender._sock.fileno() == -1
