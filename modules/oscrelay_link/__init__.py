"""OSC Relay Link

Conexión saliente al hub de relay con handshake y máquina de estados de
reconexión de retardo fijo.
"""

from modules.oscrelay_link.reconnect import ReconnectPolicy, UNLIMITED
from modules.oscrelay_link.relay_link import RelayLink, LinkPhase, RelayLinkState

__all__ = [
    "RelayLink",
    "LinkPhase",
    "RelayLinkState",
    "ReconnectPolicy",
    "UNLIMITED",
]
