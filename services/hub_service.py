"""Hub service: proceso servidor del OSC Relay."""

import asyncio
import logging
import socket
from typing import Any, Dict, Optional

import uvicorn

from adapters.interfaces.base_service import BaseService, ServiceStatus
from api.main import create_app
from core.errors import PortUnavailable
from modules.oscrelay_config import ServerConfig
from modules.oscrelay_hub import RelayHub

logger = logging.getLogger(__name__)


class HubService(BaseService):
    """Sirve el Relay Hub con uvicorn."""

    def __init__(self, config: Optional[ServerConfig] = None, hub: Optional[RelayHub] = None):
        super().__init__()
        self.config = config or ServerConfig()
        self.hub = hub or RelayHub()
        self.app = create_app(self.config, self.hub)
        self.server: Optional[uvicorn.Server] = None
        self.serve_task: Optional[asyncio.Task] = None
        self.port: Optional[int] = None

    async def initialize(self) -> None:
        """Prepara el servidor uvicorn."""
        uvicorn_config = uvicorn.Config(
            self.app,
            log_config=None,
            log_level=self.config.logging.level.lower(),
        )
        self.server = uvicorn.Server(uvicorn_config)

    async def start(self) -> None:
        """Enlaza el puerto del hub y arranca uvicorn en segundo plano.

        Raises:
            PortUnavailable: Si el puerto no se puede enlazar
        """
        self._set_status(ServiceStatus.STARTING)
        if self.server is None:
            await self.initialize()

        host, port = self.config.server.host, self.config.server.port
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError as e:
            sock.close()
            self._set_status(ServiceStatus.ERROR, str(e))
            raise PortUnavailable(port, host, e) from e
        self.port = sock.getsockname()[1]

        self.serve_task = asyncio.create_task(self.server.serve(sockets=[sock]))
        while not self.server.started and not self.serve_task.done():
            await asyncio.sleep(0.05)

        self._set_status(ServiceStatus.RUNNING)
        logger.info(f"Relay Hub escuchando en ws://{host}:{self.port}")

    async def run(self) -> None:
        """Arranca el hub y espera hasta que uvicorn termine."""
        await self.start()
        try:
            await self.serve_task
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Detiene uvicorn."""
        if self.server is None or self.serve_task is None:
            return
        self._set_status(ServiceStatus.STOPPING)
        self.server.should_exit = True
        if not self.serve_task.done():
            try:
                await asyncio.wait_for(self.serve_task, timeout=5.0)
            except asyncio.TimeoutError:
                self.serve_task.cancel()
                logger.warning("Relay Hub no se detuvo a tiempo, cancelado")
        self.serve_task = None
        self._set_status(ServiceStatus.STOPPED)
        logger.info("Relay Hub detenido")

    async def health_check(self) -> Dict[str, Any]:
        """Estado de salud del hub."""
        return {
            "status": self.status.value,
            "error": self.error_message,
            "port": self.port,
            "connections": len(self.hub.registry),
        }
