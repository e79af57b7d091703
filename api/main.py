"""Main FastAPI application for the OSC Relay hub.

Expone el bus de relay por WebSocket en ``/`` y endpoints REST de salud y
estado del registro de conexiones.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from modules.oscrelay_config.settings import ServerConfig
from modules.oscrelay_hub import RelayHub

logger = logging.getLogger(__name__)


def create_app(server_config: Optional[ServerConfig] = None, hub: Optional[RelayHub] = None) -> FastAPI:
    """Crea la aplicación del hub.

    Args:
        server_config: Configuración del servidor (por defecto la de fábrica)
        hub: Hub a exponer (uno nuevo por defecto)

    Returns:
        Aplicación FastAPI con el hub en ``app.state.hub``
    """
    server_config = server_config or ServerConfig()
    hub = hub or RelayHub()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        logger.info(
            f"🚀 Relay Hub escuchando en ws://{server_config.server.host}:{server_config.server.port}"
        )
        try:
            yield
        finally:
            logger.info(f"🛑 Cerrando Relay Hub ({len(hub.registry)} conexiones activas)")

    app = FastAPI(
        title="OSC Relay Hub",
        description="Bus de relay WebSocket para mensajes OSC",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.hub = hub
    app.state.server_config = server_config

    @app.get("/health")
    async def health():
        """Estado de salud del hub."""
        return {"status": "ok", "connections": len(hub.registry)}

    @app.get("/status")
    async def status():
        """Snapshot del registro de conexiones."""
        return hub.status()

    @app.websocket("/")
    async def relay_endpoint(websocket: WebSocket):
        """Conexión de un Relay Link al bus."""
        await websocket.accept()
        client = websocket.client
        host = client.host if client else "unknown"
        port = client.port if client else 0
        connection_id = hub.register(websocket, host, port)

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.debug(f"Cliente {connection_id} desconectado")
                    break
                # Los frames binarios llevan el mismo JSON
                raw = message.get("text") or message.get("bytes")
                if raw is None:
                    continue
                await hub.handle_message(connection_id, raw)
        except WebSocketDisconnect:
            logger.debug(f"Cliente {connection_id} desconectado")
        except Exception as e:
            logger.error(f"Error en WebSocket {connection_id}: {e}")
        finally:
            hub.unregister(connection_id)

    return app


app = create_app()
