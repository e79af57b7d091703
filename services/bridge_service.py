"""Bridge service: proceso cliente del OSC Relay.

Compone transporte, filtro, Relay Link, OSCQuery y orquestador a partir de
``Client-Config.yml`` y gestiona su ciclo de vida.
"""

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from adapters.interfaces.base_service import BaseService, ServiceStatus
from core.errors import MaxRetriesExceeded, PortUnavailable
from modules.oscrelay_bridge import BridgeOrchestrator
from modules.oscrelay_config import ClientConfig, load_client_config, save_config
from modules.oscrelay_filter import MessageFilter
from modules.oscrelay_link import RelayLink
from modules.oscrelay_query import OSCQueryService
from modules.oscrelay_transport import OSCEventLogger, OSCTransport

logger = logging.getLogger(__name__)

SERVICE_NAME = "OSCRelay"


class BridgeService(BaseService):
    """Servicio del bridge OSC <-> relay."""

    def __init__(
        self,
        config_path: Union[str, Path] = "Client-Config.yml",
        config: Optional[ClientConfig] = None,
        transport: Optional[OSCTransport] = None,
        link: Optional[RelayLink] = None,
        advertiser: Optional[OSCQueryService] = None
    ):
        """Inicializar el servicio.

        Args:
            config_path: Archivo de configuración (se reescribe con los puertos enlazados)
            config: Configuración ya cargada (se lee de ``config_path`` si es None)
            transport: Transporte a usar en lugar del de fábrica
            link: Relay Link a usar en lugar del de fábrica
            advertiser: Servicio OSCQuery a usar en lugar del de fábrica
        """
        super().__init__()
        self.config_path = Path(config_path)
        self.config = config
        self.transport = transport
        self.link = link
        self.advertiser = advertiser
        self.message_filter: Optional[MessageFilter] = None
        self.orchestrator: Optional[BridgeOrchestrator] = None
        self.receive_port: Optional[int] = None

    async def initialize(self) -> None:
        """Construye los componentes a partir de la configuración."""
        if self.config is None:
            self.config = load_client_config(self.config_path)
        config = self.config
        local = config.osc.local

        if self.transport is None:
            event_logger = None
            if config.logging.osc.events:
                event_logger = OSCEventLogger(Path(config.logging.path) / "osc")
            self.transport = OSCTransport(
                host=local.ip,
                log_incoming=config.logging.osc.incoming,
                log_outgoing=config.logging.osc.outgoing,
                event_logger=event_logger,
                label="Client",
            )

        self.message_filter = MessageFilter.from_settings(config.filters.blacklist)

        if self.link is None:
            self.link = RelayLink(
                config.relay.url,
                config.effective_user_id,
                max_attempts=config.relay.connection.retries,
                retry_delay_ms=config.relay.connection.retry_delay,
                subscribe=config.relay.subscribe,
            )

        if self.advertiser is None:
            self.advertiser = OSCQueryService(
                host=local.ip,
                http_port=local.query_port,
                osc_port=local.receive_port,
                osc_ip=local.ip,
                service_name=SERVICE_NAME,
            )

        self.orchestrator = BridgeOrchestrator(
            self.transport,
            self.message_filter,
            self.link,
            user_id=config.effective_user_id,
            local_send_port=local.send_port,
            advertiser=self.advertiser,
        )
        self.orchestrator.attach()
        logger.info(f"BridgeService inicializado para usuario '{config.effective_user_id}'")

    async def start(self) -> None:
        """Enlaza puertos, arranca OSCQuery y conecta el Relay Link.

        Raises:
            MaxRetriesExceeded: Si el link no logra conectar
            PortUnavailable: Si no hay puerto de recepción libre
        """
        self._set_status(ServiceStatus.STARTING)
        if self.orchestrator is None:
            await self.initialize()
        local = self.config.osc.local

        try:
            self.receive_port = await self._bind_with_retry(
                "recepción OSC", local.receive_port, self.transport.create_receiver
            )
        except PortUnavailable as e:
            self._set_status(ServiceStatus.ERROR, str(e))
            raise

        if local.send_port:
            self.transport.create_sender(local.send_port)
        else:
            logger.error("Puerto de envío OSC no configurado; los mensajes del relay no se emitirán")

        await self._start_advertiser()
        self._persist_ports()

        await self.orchestrator.start()
        self._set_status(ServiceStatus.RUNNING)

        try:
            await self.link.connect()
        except MaxRetriesExceeded as e:
            self._set_status(ServiceStatus.ERROR, str(e))
            await self.stop()
            raise

        self.orchestrator.publish_status("connected")

    async def run(self) -> None:
        """Arranca el servicio y lo mantiene hasta que el link falle.

        Raises:
            MaxRetriesExceeded: Cuando el link agota los reintentos
        """
        await self.start()
        failure = await self.link.wait_until_failed()
        self._set_status(ServiceStatus.ERROR, str(failure))
        self.orchestrator.publish_status("disconnected")
        await self.stop()
        raise failure

    async def stop(self) -> None:
        """Cierra sockets, link y OSCQuery."""
        if self.status != ServiceStatus.ERROR:
            self._set_status(ServiceStatus.STOPPING)

        if self.orchestrator:
            await self.orchestrator.stop()
        if self.link:
            await self.link.close()
        if self.transport:
            self.transport.close()
        if self.advertiser:
            try:
                await self.advertiser.stop()
            except Exception as e:
                logger.error(f"Error deteniendo OSCQuery: {e}")

        if self.status != ServiceStatus.ERROR:
            self._set_status(ServiceStatus.STOPPED)
        logger.info("BridgeService detenido")

    async def health_check(self) -> Dict[str, Any]:
        """Estado de salud del servicio."""
        return {
            "status": self.status.value,
            "error": self.error_message,
            "receive_port": self.receive_port,
            "link": self.link.status() if self.link else None,
            "stats": dict(self.orchestrator.stats) if self.orchestrator else {},
        }

    async def _bind_with_retry(
        self,
        what: str,
        base_port: int,
        bind: Callable[[int], Awaitable[int]]
    ) -> int:
        """Enlaza ``base_port`` o los siguientes hasta agotar los intentos."""
        attempts = self.config.osc.local.receive_port_attempts

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            retry=retry_if_exception_type(PortUnavailable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        ):
            with attempt:
                port = base_port + attempt.retry_state.attempt_number - 1 if base_port else 0
                bound = await bind(port)
                if bound != base_port:
                    logger.info(f"Puerto de {what} {base_port} ocupado, usando {bound}")
                return bound

    async def _start_advertiser(self):
        local = self.config.osc.local
        self.advertiser.osc_port = self.receive_port
        self.advertiser.install_default_methods()

        async def bind_query(port: int) -> int:
            self.advertiser.http_port = port
            await self.advertiser.start()
            return self.advertiser.http_port

        try:
            await self._bind_with_retry("OSCQuery", local.query_port, bind_query)
        except PortUnavailable as e:
            # El descubrimiento es opcional
            logger.warning(f"OSCQuery no disponible: {e}")

    def _persist_ports(self):
        local = self.config.osc.local
        changed = False

        if self.receive_port and self.receive_port != local.receive_port:
            local.receive_port = self.receive_port
            changed = True
        if self.advertiser.running and self.advertiser.http_port != local.query_port:
            local.query_port = self.advertiser.http_port
            changed = True

        if changed:
            try:
                save_config(self.config_path, self.config)
            except OSError as e:
                logger.error(f"No se pudo guardar la configuración: {e}")
