"""Relay Hub: fan-out de mensajes tunnel entre peers.

Acepta conexiones, registra identidades y reenvía cada ``osc_tunnel``
tal cual a todos los demás peers abiertos, nunca al emisor.
"""

import logging
from typing import Any, Optional, Union

from core.entities.wire import IdentifyMessage, TunnelMessage, decode_wire
from core.errors import MalformedMessage
from modules.oscrelay_hub.connection_registry import Connection, ConnectionRegistry


class RelayHub:
    """Enrutador del bus de relay."""

    def __init__(self, registry: Optional[ConnectionRegistry] = None):
        """Inicializa el hub.

        Args:
            registry: Registro de conexiones (uno nuevo por defecto)
        """
        self.registry = registry or ConnectionRegistry()
        self.messages_broadcast = 0
        self.logger = logging.getLogger(__name__)

    def register(self, websocket: Any, host: str, port: int) -> str:
        """Registra una conexión aceptada.

        Returns:
            Id de conexión asignado
        """
        connection = self.registry.add(websocket, host, port)
        self.logger.info(f"Nueva conexión {connection.id}. Total: {len(self.registry)}")
        return connection.id

    def unregister(self, connection_id: str) -> Optional[Connection]:
        """Elimina una conexión y registra sus estadísticas."""
        connection = self.registry.remove(connection_id)
        if connection is None:
            return None

        self.logger.info(
            f"Conexión {connection.display_name} ({connection.id}) cerrada | "
            f"Mensajes procesados: {connection.message_count} | "
            f"Conectado: {connection.connected_seconds():.0f}s"
        )
        return connection

    async def handle_message(self, connection_id: str, raw: Union[str, bytes]) -> int:
        """Procesa un mensaje recibido de una conexión.

        Args:
            connection_id: Conexión emisora
            raw: Texto JSON recibido

        Returns:
            Número de peers a los que se entregó el mensaje
        """
        connection = self.registry.record_message(connection_id)
        if connection is None:
            self.logger.warning(f"Mensaje de conexión desconocida {connection_id}")
            return 0

        try:
            message = decode_wire(raw)
        except MalformedMessage as e:
            self.logger.warning(f"{connection.display_name}: {e}")
            return 0

        if isinstance(message, IdentifyMessage):
            self.registry.set_user(connection_id, message.user_id)
            self.logger.info(f"Conexión {connection_id} identificada como '{message.user_id}'")
            return 0

        if isinstance(message, TunnelMessage):
            args = ", ".join(str(arg) for arg in message.args)
            self.logger.info(f"{connection.display_name}: {message.address} | [{args}]")
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return await self.broadcast(raw, exclude_id=connection_id)

        self.logger.debug(f"{connection.display_name}: mensaje '{message.type}' aceptado")
        return 0

    async def broadcast(self, payload: str, exclude_id: Optional[str] = None) -> int:
        """Envía ``payload`` a cada peer abierto excepto ``exclude_id``.

        Los envíos son secuenciales: un peer lento retrasa a los siguientes,
        pero se conserva el orden por link.

        Returns:
            Número de entregas realizadas
        """
        delivered = 0

        for connection in self.registry.peers(exclude_id):
            try:
                await connection.websocket.send_text(payload)
                delivered += 1
            except Exception as e:
                self.logger.error(f"Error en broadcast a {connection.display_name}: {e}")

        self.messages_broadcast += delivered
        return delivered

    def status(self) -> dict:
        return {
            "connections": self.registry.snapshot(),
            "count": len(self.registry),
            "messages_broadcast": self.messages_broadcast,
        }
