"""OSC Relay Transport

Adaptador UDP/OSC local: receptores asyncio, emisores cacheados por puerto y
registro opcional de eventos.
"""

from modules.oscrelay_transport.codec import encode, decode, build_message
from modules.oscrelay_transport.osc_transport import OSCTransport
from modules.oscrelay_transport.event_log import OSCEventLogger

__all__ = [
    "encode",
    "decode",
    "build_message",
    "OSCTransport",
    "OSCEventLogger",
]
