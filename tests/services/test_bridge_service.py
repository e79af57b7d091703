"""Tests para BridgeService.

Los colaboradores de red se reemplazan por mocks; se verifica la
composición, los reintentos de puerto y la reacción a fallos del link.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from adapters.interfaces.base_service import ServiceStatus
from core.errors import MaxRetriesExceeded, PortUnavailable
from modules.oscrelay_bridge import BridgeOrchestrator
from modules.oscrelay_config import ClientConfig
from modules.oscrelay_link import RelayLink
from modules.oscrelay_query import OSCQueryService
from modules.oscrelay_transport import OSCTransport
from services.bridge_service import BridgeService


@pytest.fixture
def config(tmp_path):
    config = ClientConfig()
    config.relay.user.name = "alice"
    config.logging.path = str(tmp_path / "logs")
    return config


@pytest.fixture
def transport():
    transport = MagicMock(spec=OSCTransport)
    transport.create_receiver = AsyncMock(return_value=9001)
    return transport


@pytest.fixture
def link():
    link = MagicMock(spec=RelayLink)
    link.connect = AsyncMock()
    link.close = AsyncMock()
    link.connected = True
    link.status.return_value = {"phase": "connected"}
    return link


@pytest.fixture
def advertiser():
    advertiser = MagicMock(spec=OSCQueryService)
    advertiser.running = False
    advertiser.http_port = 9012
    advertiser.start = AsyncMock()
    advertiser.stop = AsyncMock()
    return advertiser


@pytest.fixture
def service(tmp_path, config, transport, link, advertiser):
    return BridgeService(
        tmp_path / "Client-Config.yml",
        config=config,
        transport=transport,
        link=link,
        advertiser=advertiser,
    )


class TestBridgeService:
    """Tests para la clase BridgeService."""

    @pytest.mark.asyncio
    async def test_start_connects_and_publishes_status(self, service, transport, link, advertiser):
        await service.start()

        assert service.status == ServiceStatus.RUNNING
        transport.create_receiver.assert_awaited_once_with(9001)
        transport.create_sender.assert_called_once_with(9000)
        advertiser.install_default_methods.assert_called_once()
        assert advertiser.osc_port == 9001
        link.connect.assert_awaited_once()
        advertiser.set_value.assert_called_with("/status", 0, "connected")
        assert isinstance(service.orchestrator, BridgeOrchestrator)
        await service.stop()

    @pytest.mark.asyncio
    async def test_busy_receive_port_uses_next(self, service, transport, tmp_path):
        """Test puerto ocupado: se prueba el siguiente y se persiste."""
        transport.create_receiver = AsyncMock(side_effect=[PortUnavailable(9001), 9002])

        await service.start()

        assert service.receive_port == 9002
        ports = [call.args[0] for call in transport.create_receiver.await_args_list]
        assert ports == [9001, 9002]

        saved = yaml.safe_load((tmp_path / "Client-Config.yml").read_text(encoding="utf-8"))
        assert saved["osc"]["local"]["receivePort"] == 9002
        await service.stop()

    @pytest.mark.asyncio
    async def test_no_receive_port_available(self, service, config, transport, link):
        config.osc.local.receive_port_attempts = 3
        transport.create_receiver = AsyncMock(side_effect=PortUnavailable(9001))

        with pytest.raises(PortUnavailable):
            await service.start()

        assert service.status == ServiceStatus.ERROR
        assert transport.create_receiver.await_count == 3
        link.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_query_port_busy_degrades(self, service, advertiser):
        """Test OSCQuery sin puerto no impide arrancar el bridge."""
        advertiser.start = AsyncMock(side_effect=PortUnavailable(9012))

        await service.start()

        assert service.status == ServiceStatus.RUNNING
        await service.stop()

    @pytest.mark.asyncio
    async def test_query_port_change_persisted(self, service, advertiser, tmp_path):
        async def start_on_next_port():
            advertiser.http_port = 9013
            advertiser.running = True

        advertiser.start = AsyncMock(side_effect=start_on_next_port)

        await service.start()

        saved = yaml.safe_load((tmp_path / "Client-Config.yml").read_text(encoding="utf-8"))
        assert saved["osc"]["local"]["queryPort"] == 9013
        await service.stop()

    @pytest.mark.asyncio
    async def test_link_failure_on_start(self, service, link, transport):
        """Test reintentos agotados dejan el servicio en ERROR."""
        link.connect = AsyncMock(side_effect=MaxRetriesExceeded(3, 3))

        with pytest.raises(MaxRetriesExceeded):
            await service.start()

        assert service.status == ServiceStatus.ERROR
        link.close.assert_awaited()
        transport.close.assert_called()

    @pytest.mark.asyncio
    async def test_run_raises_when_link_fails(self, service, link, advertiser):
        failure = MaxRetriesExceeded(3, 3)
        link.wait_until_failed = AsyncMock(return_value=failure)

        with pytest.raises(MaxRetriesExceeded):
            await service.run()

        assert service.status == ServiceStatus.ERROR
        advertiser.set_value.assert_called_with("/status", 0, "disconnected")
        advertiser.stop.assert_awaited()

    @pytest.mark.asyncio
    async def test_missing_send_port_logged(self, service, config, transport, caplog):
        config.osc.local.send_port = None

        await service.start()

        transport.create_sender.assert_not_called()
        assert "no configurado" in caplog.text
        await service.stop()

    @pytest.mark.asyncio
    async def test_stop_sets_stopped(self, service):
        await service.start()
        await service.stop()

        assert service.status == ServiceStatus.STOPPED

    @pytest.mark.asyncio
    async def test_health_check(self, service):
        await service.start()

        health = await service.health_check()

        assert health["status"] == "running"
        assert health["receive_port"] == 9001
        assert health["link"] == {"phase": "connected"}
        assert health["stats"]["forwarded"] == 0
        await service.stop()

    @pytest.mark.asyncio
    async def test_initialize_builds_real_components(self, tmp_path, config):
        config.filters.blacklist.transmission = ["/avatar/parameters/Secret*"]
        config.relay.connection.retries = -1
        service = BridgeService(tmp_path / "Client-Config.yml", config=config)

        await service.initialize()

        assert isinstance(service.transport, OSCTransport)
        assert isinstance(service.link, RelayLink)
        assert isinstance(service.advertiser, OSCQueryService)
        assert service.link.user_id == "alice"
        assert service.link.policy.unlimited
        assert not service.message_filter.allows("/avatar/parameters/SecretX", "transmission")
        assert service.orchestrator.handle_local_message in service.transport.message_handlers
