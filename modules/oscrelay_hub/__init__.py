"""OSC Relay Hub

Registro de conexiones y fan-out de mensajes tunnel sin eco al emisor.
"""

from modules.oscrelay_hub.connection_registry import Connection, ConnectionRegistry
from modules.oscrelay_hub.relay_hub import RelayHub

__all__ = [
    "Connection",
    "ConnectionRegistry",
    "RelayHub",
]
