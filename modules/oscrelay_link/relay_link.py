"""Relay Link: conexión saliente al bus de relay.

Mantiene una única conexión WebSocket con el hub, envía el handshake
``identify``/``osc_subscribe`` al conectar y reconecta con retardo fijo
hasta agotar el presupuesto de intentos.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

import websockets
from websockets.exceptions import WebSocketException

from core.entities.control_message import ControlMessage
from core.entities.wire import (
    IdentifyMessage,
    SubscribeMessage,
    TunnelMessage,
    decode_wire,
    encode_wire,
)
from core.errors import ConnectFailed, MalformedMessage, MaxRetriesExceeded
from modules.oscrelay_link.reconnect import ReconnectPolicy

InboundHandler = Callable[[ControlMessage], Any]
FailedHandler = Callable[[MaxRetriesExceeded], Any]


class LinkPhase(Enum):
    """Estados del Relay Link."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


@dataclass(frozen=True)
class RelayLinkState:
    """Snapshot inmutable del estado del link."""
    phase: LinkPhase
    attempts: int
    max_attempts: int
    retry_delay_ms: int


class RelayLink:
    """Conexión al hub con máquina de estados de reconexión.

    Transiciones:
    - DISCONNECTED -> CONNECTING -> CONNECTED
    - CONNECTED -> RECONNECTING (cierre o error) -> CONNECTING -> CONNECTED
    - RECONNECTING -> FAILED cuando se agota el presupuesto (terminal)

    Solo existe una tarea de conexión a la vez; ``connect()`` durante un
    intento pendiente la cancela, cierra el socket viejo y reinicia.
    """

    def __init__(
        self,
        url: str,
        user_id: str,
        max_attempts: int = 3,
        retry_delay_ms: int = 5000,
        subscribe: bool = True,
        open_timeout: float = 10.0
    ):
        """Inicializa el Relay Link.

        Args:
            url: URL del hub (ej: ws://localhost:4953)
            user_id: Identidad enviada en el handshake
            max_attempts: Máximo de intentos fallidos (-1 = ilimitado)
            retry_delay_ms: Retardo fijo entre intentos
            subscribe: Enviar ``osc_subscribe`` tras ``identify``
            open_timeout: Timeout del handshake WebSocket en segundos
        """
        self.url = url
        self.user_id = user_id
        self.subscribe = subscribe
        self.open_timeout = open_timeout
        self.policy = ReconnectPolicy(max_attempts, retry_delay_ms)
        self.phase = LinkPhase.DISCONNECTED
        self.websocket = None
        self.handlers: List[InboundHandler] = []
        self.failed_handlers: List[FailedHandler] = []
        self.connect_task: Optional[asyncio.Task] = None
        self.listen_task: Optional[asyncio.Task] = None
        self.failure: Optional[MaxRetriesExceeded] = None
        self.last_error: Optional[Exception] = None
        self.messages_sent = 0
        self.messages_received = 0
        self._waiter: Optional[asyncio.Future] = None
        self._failed_event: Optional[asyncio.Event] = None
        self.logger = logging.getLogger(__name__)

    @property
    def connected(self) -> bool:
        """Retorna True si está conectado."""
        return self.phase == LinkPhase.CONNECTED

    @property
    def attempts(self) -> int:
        return self.policy.attempt

    @property
    def state(self) -> RelayLinkState:
        return RelayLinkState(
            phase=self.phase,
            attempts=self.policy.attempt,
            max_attempts=self.policy.max_attempts,
            retry_delay_ms=self.policy.retry_delay_ms,
        )

    def status(self) -> Dict[str, Any]:
        """Estado del link para observabilidad."""
        return {
            "url": self.url,
            "user_id": self.user_id,
            "phase": self.phase.value,
            "attempts": self.policy.attempt,
            "max_attempts": self.policy.max_attempts,
            "messages_sent": self.messages_sent,
            "messages_received": self.messages_received,
            "last_error": str(self.last_error) if self.last_error else None,
        }

    def on_message(self, handler: InboundHandler):
        """Registra un handler para mensajes tunnel entrantes."""
        if handler not in self.handlers:
            self.handlers.append(handler)

    def remove_handler(self, handler: InboundHandler):
        if handler in self.handlers:
            self.handlers.remove(handler)

    def on_failed(self, handler: FailedHandler):
        """Registra un observador del estado FAILED."""
        if handler not in self.failed_handlers:
            self.failed_handlers.append(handler)

    async def connect(self) -> None:
        """Conecta al hub y espera a llegar a CONNECTED.

        Raises:
            MaxRetriesExceeded: Si el link agota sus intentos (o ya estaba en FAILED)
        """
        if self.phase == LinkPhase.CONNECTED:
            return
        if self.phase == LinkPhase.FAILED:
            raise self.failure

        if self.phase in (LinkPhase.CONNECTING, LinkPhase.RECONNECTING):
            self.logger.info("Intento de conexión pendiente, reiniciando...")
            await self._cancel_task(self.connect_task)

        waiter = self._get_waiter()
        self.connect_task = asyncio.create_task(self._connection_loop(delay_first=False))
        await asyncio.shield(waiter)

    async def wait_until_failed(self) -> MaxRetriesExceeded:
        """Espera a que el link llegue a FAILED y retorna el error."""
        if self.failure:
            return self.failure
        if self._failed_event is None:
            self._failed_event = asyncio.Event()
        await self._failed_event.wait()
        return self.failure

    async def send(self, message: Union[ControlMessage, TunnelMessage]) -> bool:
        """Envía un mensaje al hub.

        Args:
            message: Mensaje de control o modelo de wire

        Returns:
            True si se escribió en el socket; False si no hay conexión
        """
        address = getattr(message, "address", message.type)
        if not self.connected or self.websocket is None:
            self.logger.error(f"Sin conexión con el relay, mensaje descartado: {address}")
            return False

        try:
            await self.websocket.send(encode_wire(message))
        except (WebSocketException, OSError) as e:
            self.logger.error(f"Error enviando al relay: {e}")
            return False

        self.messages_sent += 1
        return True

    async def close(self):
        """Cierra el link, cancela reconexiones y vuelve a DISCONNECTED."""
        self.logger.info("Cerrando Relay Link...")

        await self._cancel_task(self.connect_task)
        self.connect_task = None
        await self._cancel_task(self.listen_task)
        self.listen_task = None
        await self._close_socket()

        if self._waiter and not self._waiter.done():
            self._waiter.cancel()
        self._waiter = None

        if self.phase != LinkPhase.FAILED:
            self.phase = LinkPhase.DISCONNECTED
        self.logger.info("Relay Link cerrado")

    async def _connection_loop(self, delay_first: bool):
        """Tarea única de conexión: intenta hasta conectar o fallar."""
        if delay_first:
            await self.policy.wait()

        while True:
            if await self._attempt():
                return
            if self.phase != LinkPhase.RECONNECTING:
                return
            await self.policy.wait()

    async def _attempt(self) -> bool:
        self.phase = LinkPhase.CONNECTING
        await self._cancel_task(self.listen_task)
        self.listen_task = None
        await self._close_socket()

        self.logger.info(f"Conectando a {self.url}...")
        try:
            websocket = await websockets.connect(
                self.url,
                open_timeout=self.open_timeout,
                ping_interval=20,
                ping_timeout=10,
                close_timeout=10
            )
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            self._register_failure(ConnectFailed(self.url, e))
            return False

        self.websocket = websocket
        try:
            # identify siempre es el primer mensaje de la conexión
            await websocket.send(IdentifyMessage(user_id=self.user_id).to_json())
            if self.subscribe:
                await websocket.send(SubscribeMessage(user_id=self.user_id).to_json())
        except (WebSocketException, OSError) as e:
            await self._close_socket()
            self._register_failure(ConnectFailed(self.url, e))
            return False

        self.phase = LinkPhase.CONNECTED
        self.policy.reset()
        self.last_error = None
        self.logger.info(f"Conectado al relay como '{self.user_id}'")

        self.listen_task = asyncio.create_task(self._listen(websocket))
        if self._waiter and not self._waiter.done():
            self._waiter.set_result(None)
        return True

    def _register_failure(self, error: Exception):
        """Cuenta un intento fallido y decide entre RECONNECTING y FAILED."""
        self.last_error = error

        if self.policy.register_failure():
            self.phase = LinkPhase.RECONNECTING
            budget = "∞" if self.policy.unlimited else self.policy.max_attempts
            self.logger.warning(f"{error} (intento {self.policy.attempt}/{budget})")
            return

        self.phase = LinkPhase.FAILED
        self.failure = MaxRetriesExceeded(self.policy.attempt, self.policy.max_attempts, error)
        self.logger.error(str(self.failure))

        if self._waiter and not self._waiter.done():
            self._waiter.set_exception(self.failure)
        if self._failed_event:
            self._failed_event.set()
        for handler in list(self.failed_handlers):
            try:
                handler(self.failure)
            except Exception as e:
                self.logger.error(f"Error en observador de fallo: {e}")

    async def _listen(self, websocket):
        """Tarea de escucha de mensajes del hub."""
        error = None
        try:
            async for raw in websocket:
                self._handle_raw(raw)
        except (WebSocketException, OSError) as e:
            error = e

        if websocket is self.websocket and self.phase == LinkPhase.CONNECTED:
            self._handle_connection_lost(error)

    def _handle_connection_lost(self, error: Optional[Exception]):
        self.logger.warning("Conexión con el relay perdida")
        self.websocket = None
        self._register_failure(ConnectFailed(self.url, error))

        if self.phase == LinkPhase.RECONNECTING:
            if not self.connect_task or self.connect_task.done():
                self.connect_task = asyncio.create_task(self._connection_loop(delay_first=True))

    def _handle_raw(self, raw):
        try:
            message = decode_wire(raw)
        except MalformedMessage as e:
            self.logger.warning(f"{e}; mensaje omitido")
            return

        if not isinstance(message, TunnelMessage):
            self.logger.debug(f"Mensaje '{message.type}' del relay ignorado")
            return

        if message.relayed and message.user_id == self.user_id:
            self.logger.debug(f"Eco propio ignorado: {message.address}")
            return

        self.messages_received += 1
        control = message.to_control_message()
        for handler in list(self.handlers):
            try:
                handler(control)
            except Exception as e:
                self.logger.error(f"Error en handler de relay: {e}")

    def _get_waiter(self) -> asyncio.Future:
        if self._waiter is None or self._waiter.done():
            self._waiter = asyncio.get_running_loop().create_future()
        return self._waiter

    async def _close_socket(self):
        websocket, self.websocket = self.websocket, None
        if websocket is None:
            return
        try:
            await websocket.close()
        except (WebSocketException, OSError) as e:
            self.logger.debug(f"Error cerrando socket anterior: {e}")

    async def _cancel_task(self, task: Optional[asyncio.Task]):
        if not task or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def __repr__(self) -> str:
        return f"RelayLink(url={self.url}, phase={self.phase.value}, attempts={self.policy.attempt})"
