"""Transport Adapter OSC/UDP.

Gestiona los endpoints UDP locales: receptores asyncio que convierten cada
datagrama en ``ControlMessage`` y emisores python-osc cacheados por puerto.
No conoce el bus de relay.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple

from pythonosc.udp_client import SimpleUDPClient

from core.entities.control_message import ControlMessage
from core.errors import MalformedMessage, PortUnavailable
from modules.oscrelay_transport.codec import build_message, decode
from modules.oscrelay_transport.event_log import OSCEventLogger

MessageHandler = Callable[[ControlMessage], Optional[bool]]


class _OSCReceiverProtocol(asyncio.DatagramProtocol):
    """Protocolo asyncio que entrega datagramas al transporte."""

    def __init__(self, owner: "OSCTransport", port: int):
        self._owner = owner
        self._port = port

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        self._owner._handle_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        self._owner.logger.warning(f"Error en receptor OSC puerto {self._port}: {exc}")


class OSCTransport:
    """Adaptador entre UDP local y ``ControlMessage``.

    - ``create_receiver`` enlaza un puerto y lanza ``PortUnavailable`` si
      está ocupado; no prueba otros puertos.
    - ``send`` es fire-and-forget y nunca lanza excepciones.
    - ``on_message`` admite varios handlers; si alguno devuelve False no se
      imprime la línea de consola del mensaje.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        log_incoming: bool = True,
        log_outgoing: bool = True,
        event_logger: Optional[OSCEventLogger] = None,
        label: str = "Client"
    ):
        """Inicializa el transporte.

        Args:
            host: Dirección local de enlace y destino de los envíos
            log_incoming: Imprimir mensajes recibidos
            log_outgoing: Imprimir mensajes enviados
            event_logger: Registro JSON opcional de eventos
            label: Prefijo de las líneas de log (``Client``/``Server``)
        """
        self.host = host
        self.log_incoming = log_incoming
        self.log_outgoing = log_outgoing
        self.event_logger = event_logger
        self.label = label
        self.receivers: Dict[int, asyncio.DatagramTransport] = {}
        self.senders: Dict[int, SimpleUDPClient] = {}
        self.message_handlers: List[MessageHandler] = []
        self.logger = logging.getLogger(__name__)

    async def create_receiver(self, port: int, host: Optional[str] = None) -> int:
        """Enlaza un receptor UDP.

        Args:
            port: Puerto a enlazar (0 = puerto efímero)
            host: Dirección de enlace (por defecto ``self.host``)

        Returns:
            Puerto efectivamente enlazado

        Raises:
            PortUnavailable: Si el sistema rechaza el enlace
        """
        host = host or self.host
        loop = asyncio.get_running_loop()

        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _OSCReceiverProtocol(self, port),
                local_addr=(host, port)
            )
        except OSError as e:
            raise PortUnavailable(port, host, e) from e

        bound_port = transport.get_extra_info("sockname")[1]
        self.receivers[bound_port] = transport
        self.logger.info(f"[{self.label}] Receptor OSC escuchando en {host}:{bound_port}")
        return bound_port

    def create_sender(self, port: int) -> SimpleUDPClient:
        """Crea y cachea el emisor UDP de un puerto."""
        client = SimpleUDPClient(self.host, port)
        self.senders[port] = client
        return client

    def on_message(self, handler: MessageHandler) -> None:
        if handler not in self.message_handlers:
            self.message_handlers.append(handler)

    def remove_handler(self, handler: MessageHandler) -> None:
        if handler in self.message_handlers:
            self.message_handlers.remove(handler)

    def send(self, port: Optional[int], address: str, *args) -> bool:
        """Envía un mensaje OSC al puerto local indicado.

        Args:
            port: Puerto destino; si no está configurado no se envía nada
            address: Dirección OSC
            *args: Argumentos del mensaje

        Returns:
            True si el datagrama salió del socket
        """
        if not port:
            self.logger.error(f"[{self.label}] Puerto de destino no configurado para {address}")
            return False

        try:
            message = build_message(address, args)
            sender = self.senders.get(port) or self.create_sender(port)
            sender.send(message)
        except MalformedMessage as e:
            self.logger.error(f"[{self.label}] {e}")
            return False
        except OSError as e:
            self.logger.error(f"[{self.label}] Error enviando OSC a puerto {port}: {e}")
            return False

        if self.log_outgoing:
            self.logger.info(
                f"[{self.label}] | Sending OSC to port {port}: {address} | "
                f"[{', '.join(str(a) for a in args)}]"
            )
        if self.event_logger:
            self.event_logger.log_event("outgoing", self.host, str(port), address, list(args))
        return True

    def _handle_datagram(self, data: bytes, addr: Tuple[str, int]) -> None:
        source = addr[0]
        try:
            decoded = decode(data)
        except MalformedMessage as e:
            self.logger.warning(f"[{self.label}] Datagrama descartado de {source}: {e}")
            return

        for address, args in decoded:
            try:
                message = ControlMessage.local(address, args, source=source)
            except ValueError as e:
                self.logger.warning(f"[{self.label}] Mensaje OSC no soportado de {source}: {e}")
                continue
            self._dispatch(message)

    def _dispatch(self, message: ControlMessage) -> None:
        should_log = True

        for handler in list(self.message_handlers):
            try:
                if handler(message) is False:
                    should_log = False
            except Exception as e:
                self.logger.error(f"[{self.label}] Error en handler OSC: {e}")

        if should_log and self.log_incoming:
            self.logger.info(
                f"[{self.label}] | Local IP: {message.source} | Received OSC: "
                f"{message.address} | {message.describe_args()}"
            )
        if should_log and self.event_logger:
            self.event_logger.log_event(
                "incoming", message.source, self.host, message.address, list(message.args)
            )

    def close(self) -> None:
        """Cierra receptores y emisores."""
        for port, transport in list(self.receivers.items()):
            transport.close()
            self.logger.debug(f"[{self.label}] Receptor OSC {port} cerrado")
        self.receivers.clear()

        for port, sender in list(self.senders.items()):
            try:
                sender.close()
            except OSError as e:
                self.logger.debug(f"[{self.label}] Error cerrando emisor OSC {port}: {e}")
        self.senders.clear()

    def __repr__(self) -> str:
        return (
            f"OSCTransport(host={self.host}, receivers={list(self.receivers)}, "
            f"senders={list(self.senders)})"
        )
