"""Bridge Orchestrator.

Une Transport Adapter, Message Filter y Relay Link aplicando la
prevención de bucles: un mensaje marcado ``relayed`` nunca vuelve al bus y
el camino bus -> local nunca escribe en el bus.
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

from adapters.interfaces.base_service import QueryAdvertiserInterface
from core.entities.control_message import Channel, ControlMessage, MessageType
from modules.oscrelay_filter import MessageFilter
from modules.oscrelay_link import RelayLink
from modules.oscrelay_transport import OSCTransport

STATUS_PATH = "/status"

EchoKey = Tuple[str, Tuple[Any, ...]]


def _echo_key(message: ControlMessage) -> EchoKey:
    # float32 en UDP: comparar con precisión reducida
    args = tuple(round(a, 5) if isinstance(a, float) else a for a in message.args)
    return message.address, args


class BridgeOrchestrator:
    """Pegamento entre el transporte local y el bus de relay.

    - ``handle_local_message``: consulta ambos canales del filtro, envía al
      bus (vía cola FIFO) solo si la transmisión está permitida y el mensaje
      no es ``relayed``; retorna el veredicto de consola.
    - ``handle_bus_message``: solo acepta ``TUNNEL`` y lo emite en el puerto
      local de envío; nunca reenvía al bus.
    """

    def __init__(
        self,
        transport: OSCTransport,
        message_filter: MessageFilter,
        link: RelayLink,
        user_id: str,
        local_send_port: Optional[int],
        advertiser: Optional[QueryAdvertiserInterface] = None,
        echo_window: float = 1.0
    ):
        """Inicializa el orquestador.

        Args:
            transport: Transport Adapter OSC/UDP
            message_filter: Filtro de blacklists
            link: Relay Link hacia el hub
            user_id: Identidad propia usada en los mensajes tunelizados
            local_send_port: Puerto local donde se emiten los mensajes del bus
            advertiser: Servicio de descubrimiento opcional
            echo_window: Segundos durante los que un reflejo local del bus
                se considera eco (0 desactiva)
        """
        self.transport = transport
        self.filter = message_filter
        self.link = link
        self.user_id = user_id
        self.local_send_port = local_send_port
        self.advertiser = advertiser
        self.echo_window = echo_window
        self.forward_task: Optional[asyncio.Task] = None
        self._queue: Optional[asyncio.Queue] = None
        self._recent_inbound: Dict[EchoKey, float] = {}
        self.stats = {
            "local_received": 0,
            "forwarded": 0,
            "dropped_offline": 0,
            "suppressed_echo": 0,
            "bus_received": 0,
            "emitted_local": 0,
        }
        self.logger = logging.getLogger(__name__)

    def attach(self):
        """Registra los handlers en el transporte y en el link."""
        self.transport.on_message(self.handle_local_message)
        self.link.on_message(self.handle_bus_message)

    async def start(self):
        """Inicia la tarea única de reenvío al bus."""
        if self.forward_task and not self.forward_task.done():
            return
        self._queue = asyncio.Queue()
        self.forward_task = asyncio.create_task(self._forward_loop())

    async def stop(self):
        """Detiene el reenvío y descarta mensajes pendientes."""
        if self.forward_task and not self.forward_task.done():
            self.forward_task.cancel()
            try:
                await self.forward_task
            except asyncio.CancelledError:
                pass
        self.forward_task = None
        self._queue = None

    async def flush(self):
        """Espera a que la cola de reenvío quede vacía."""
        if self._queue is not None:
            await self._queue.join()

    def handle_local_message(self, message: ControlMessage) -> bool:
        """Procesa un mensaje observado en el transporte local.

        Returns:
            True si el mensaje puede mostrarse en consola
        """
        self.stats["local_received"] += 1
        log_ok = self.filter.allows(message.address, Channel.CONSOLE)
        send_ok = self.filter.allows(message.address, Channel.TRANSMISSION)

        if not message.relayed and self._is_local_echo(message):
            message = replace(message, relayed=True)
            self.stats["suppressed_echo"] += 1

        if send_ok and not message.relayed:
            self._enqueue(message.as_relayed(self.user_id))

        return log_ok

    def handle_bus_message(self, message: ControlMessage) -> bool:
        """Emite localmente un mensaje recibido del bus.

        Returns:
            True si el mensaje se envió al puerto local
        """
        if message.type != MessageType.TUNNEL:
            self.logger.debug(f"Mensaje de bus '{message.type.value}' ignorado")
            return False

        self.stats["bus_received"] += 1
        if not self.filter.allows(message.address, Channel.TRANSMISSION):
            return False

        if self.filter.allows(message.address, Channel.CONSOLE):
            self.logger.info(
                f"[Client] Mensaje de relay de {message.user_id or 'desconocido'}: {message.address}"
            )

        self._remember_inbound(message)
        try:
            sent = bool(self.transport.send(self.local_send_port, message.address, *message.args))
        except Exception as e:
            self.logger.error(f"Error emitiendo {message.address} en local: {e}")
            return False

        if sent:
            self.stats["emitted_local"] += 1
        return sent

    def publish_status(self, text: str):
        """Publica un valor de estado en el servicio de descubrimiento."""
        if self.advertiser is None:
            return
        try:
            self.advertiser.set_value(STATUS_PATH, 0, text)
        except Exception as e:
            self.logger.error(f"Error publicando estado '{text}': {e}")

    def _enqueue(self, message: ControlMessage):
        if not self.link.connected:
            # Sin buffer durante cortes
            self.stats["dropped_offline"] += 1
            self.logger.debug(f"Relay desconectado, mensaje descartado: {message.address}")
            return
        if self._queue is None:
            self.logger.warning(f"Orquestador no iniciado, mensaje descartado: {message.address}")
            return
        self._queue.put_nowait(message)

    async def _forward_loop(self):
        """Tarea de reenvío FIFO hacia el Relay Link."""
        queue = self._queue
        while True:
            message = await queue.get()
            try:
                if await self.link.send(message):
                    self.stats["forwarded"] += 1
            except Exception as e:
                self.logger.error(f"Error reenviando {message.address} al relay: {e}")
            finally:
                queue.task_done()

    def _remember_inbound(self, message: ControlMessage):
        if self.echo_window <= 0:
            return
        now = time.monotonic()
        if len(self._recent_inbound) > 256:
            self._recent_inbound = {k: t for k, t in self._recent_inbound.items() if t > now}
        self._recent_inbound[_echo_key(message)] = now + self.echo_window

    def _is_local_echo(self, message: ControlMessage) -> bool:
        expires = self._recent_inbound.pop(_echo_key(message), None)
        return expires is not None and expires > time.monotonic()

    def __repr__(self) -> str:
        return f"BridgeOrchestrator(user_id={self.user_id}, send_port={self.local_send_port})"
