"""Registro de conexiones del Relay Hub.

Cada hub es dueño de su propio registro; no hay estado global de
proceso. Las mutaciones se serializan con un lock.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from starlette.websockets import WebSocketState


@dataclass
class Connection:
    """Conexión de un peer al hub."""
    id: str
    websocket: Any
    host: str = ""
    port: int = 0
    user_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    message_count: int = 0

    @property
    def display_name(self) -> str:
        return self.user_id or self.id

    @property
    def is_open(self) -> bool:
        """True si el socket sigue abierto para enviar."""
        state = getattr(self.websocket, "application_state", WebSocketState.CONNECTED)
        return state == WebSocketState.CONNECTED

    def connected_seconds(self, now: Optional[datetime] = None) -> float:
        return ((now or datetime.now()) - self.created_at).total_seconds()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "messageCount": self.message_count,
            "connectedAt": self.created_at.isoformat(),
        }


class ConnectionRegistry:
    """Mapa ``connection_id -> Connection`` protegido por lock."""

    def __init__(self):
        self._connections: Dict[str, Connection] = {}
        self._lock = threading.RLock()

    def add(self, websocket: Any, host: str, port: int) -> Connection:
        """Registra una conexión con id derivado del endpoint remoto.

        Si el id ``host:port`` ya existe se añade un sufijo ``#n``.
        """
        with self._lock:
            base_id = f"{host}:{port}"
            connection_id = base_id
            suffix = 2
            while connection_id in self._connections:
                connection_id = f"{base_id}#{suffix}"
                suffix += 1

            connection = Connection(id=connection_id, websocket=websocket, host=host, port=port)
            self._connections[connection_id] = connection
            return connection

    def remove(self, connection_id: str) -> Optional[Connection]:
        with self._lock:
            return self._connections.pop(connection_id, None)

    def get(self, connection_id: str) -> Optional[Connection]:
        with self._lock:
            return self._connections.get(connection_id)

    def set_user(self, connection_id: str, user_id: str) -> Optional[Connection]:
        with self._lock:
            connection = self._connections.get(connection_id)
            if connection:
                connection.user_id = user_id
            return connection

    def record_message(self, connection_id: str) -> Optional[Connection]:
        with self._lock:
            connection = self._connections.get(connection_id)
            if connection:
                connection.message_count += 1
            return connection

    def peers(self, exclude_id: Optional[str] = None) -> List[Connection]:
        """Conexiones abiertas distintas de ``exclude_id``."""
        with self._lock:
            return [
                connection for connection_id, connection in self._connections.items()
                if connection_id != exclude_id and connection.is_open
            ]

    def snapshot(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [connection.snapshot() for connection in self._connections.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._connections
