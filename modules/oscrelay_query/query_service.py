"""Servicio de descubrimiento OSCQuery.

Publica por HTTP un árbol JSON con los métodos OSC disponibles y la
información del host (``?HOST_INFO``), servido con FastAPI + uvicorn.
"""

import asyncio
import logging
import socket
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from adapters.interfaces.base_service import QueryAdvertiserInterface
from core.errors import PortUnavailable

DEFAULT_STATUS = "waiting for input"

TYPE_TAGS = {
    "float": "f",
    "int": "i",
    "string": "s",
    "bool": "T",
}


class OSCQAccess(IntEnum):
    """Niveles de acceso de un nodo OSCQuery."""
    NO_VALUE = 0
    READONLY = 1
    WRITEONLY = 2
    READWRITE = 3


@dataclass
class QueryNode:
    """Nodo del árbol de direcciones."""
    full_path: str
    description: str = ""
    access: int = OSCQAccess.NO_VALUE
    arguments: List[Dict[str, Any]] = field(default_factory=list)
    values: List[Any] = field(default_factory=list)
    contents: Dict[str, "QueryNode"] = field(default_factory=dict)

    @property
    def type_tag(self) -> str:
        return "".join(TYPE_TAGS.get(arg.get("type"), arg.get("type", "")) for arg in self.arguments)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"FULL_PATH": self.full_path, "ACCESS": int(self.access)}
        if self.description:
            data["DESCRIPTION"] = self.description
        if self.arguments:
            data["TYPE"] = self.type_tag
            ranges = [arg.get("range") for arg in self.arguments]
            if any(ranges):
                data["RANGE"] = [
                    {"MIN": r["min"], "MAX": r["max"]} if r else {} for r in ranges
                ]
            if self.values:
                data["VALUE"] = list(self.values)
        if self.contents:
            data["CONTENTS"] = {name: child.to_dict() for name, child in self.contents.items()}
        return data


class OSCQueryService(QueryAdvertiserInterface):
    """Servidor OSCQuery mínimo para el cliente de relay."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        http_port: int = 9012,
        osc_port: int = 9001,
        osc_ip: str = "127.0.0.1",
        service_name: str = "OSCRelay"
    ):
        """Inicializa el servicio.

        Args:
            host: Dirección de enlace HTTP
            http_port: Puerto HTTP de descubrimiento (0 = efímero)
            osc_port: Puerto OSC anunciado (receptor UDP del cliente)
            osc_ip: IP OSC anunciada
            service_name: Nombre anunciado en HOST_INFO
        """
        self.host = host
        self.http_port = http_port
        self.osc_port = osc_port
        self.osc_ip = osc_ip
        self.service_name = service_name
        self.root = QueryNode("/", "root node")
        self.server: Optional[uvicorn.Server] = None
        self.serve_task: Optional[asyncio.Task] = None
        self.logger = logging.getLogger(__name__)
        self.app = self._create_app()

    @property
    def running(self) -> bool:
        return self.serve_task is not None and not self.serve_task.done()

    def add_method(
        self,
        path: str,
        description: str = "",
        access: int = OSCQAccess.READWRITE,
        arguments: Optional[List[Dict[str, Any]]] = None
    ) -> None:
        """Declara un método OSC en el árbol."""
        node = self._ensure_node(path)
        node.description = description
        node.access = access
        node.arguments = list(arguments or [])
        if any("value" in arg for arg in node.arguments):
            node.values = [arg.get("value") for arg in node.arguments]
        else:
            node.values = []

    def set_value(self, path: str, index: int, value: Any) -> None:
        """Actualiza el valor ``index`` de un método.

        Raises:
            KeyError: Si el método no existe
        """
        node = self.find(path)
        if node is None:
            raise KeyError(path)
        while len(node.values) <= index:
            node.values.append(None)
        node.values[index] = value

    def find(self, path: str) -> Optional[QueryNode]:
        node = self.root
        for part in [p for p in path.split("/") if p]:
            node = node.contents.get(part)
            if node is None:
                return None
        return node

    def host_info(self) -> Dict[str, Any]:
        return {
            "NAME": self.service_name,
            "EXTENSIONS": {
                "ACCESS": True,
                "VALUE": True,
                "TYPE": True,
                "RANGE": True,
                "DESCRIPTION": True,
            },
            "OSC_IP": self.osc_ip,
            "OSC_PORT": self.osc_port,
            "OSC_TRANSPORT": "UDP",
        }

    def install_default_methods(self, status: str = DEFAULT_STATUS) -> None:
        """Declara los métodos por defecto del cliente de relay."""
        self.add_method(
            "/status",
            "Client status string",
            OSCQAccess.READONLY,
            [{"type": "string"}],
        )
        self.set_value("/status", 0, status)

        float_arg = [{"type": "float", "range": {"min": 0, "max": 1}}]
        self.add_method("/avatar/parameters/*", "Avatar parameter changes", OSCQAccess.READWRITE, float_arg)
        self.add_method("/avatar/change", "Change avatar", OSCQAccess.READWRITE, float_arg)
        self.add_method("/avatar/parameters/IsLocal", "Is local player", OSCQAccess.READWRITE, float_arg)
        self.add_method(
            "/chatbox/input",
            "Chatbox input",
            OSCQAccess.READWRITE,
            [{"type": "string"}, {"type": "bool"}],
        )

    async def start(self) -> None:
        """Enlaza el puerto HTTP y arranca uvicorn en segundo plano.

        Raises:
            PortUnavailable: Si el puerto HTTP no se puede enlazar
        """
        if self.running:
            return

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.http_port))
        except OSError as e:
            sock.close()
            raise PortUnavailable(self.http_port, self.host, e) from e
        self.http_port = sock.getsockname()[1]

        config = uvicorn.Config(self.app, log_level="warning", lifespan="off")
        self.server = uvicorn.Server(config)
        self.serve_task = asyncio.create_task(self.server.serve(sockets=[sock]))

        while not self.server.started and not self.serve_task.done():
            await asyncio.sleep(0.05)

        self.logger.info(
            f"[Client] OSCQuery disponible en http://{self.host}:{self.http_port} "
            f"(OSC en {self.osc_ip}:{self.osc_port})"
        )

    async def stop(self) -> None:
        """Detiene el servidor HTTP."""
        if self.server is None or self.serve_task is None:
            return
        self.server.should_exit = True
        try:
            await asyncio.wait_for(self.serve_task, timeout=5.0)
        except asyncio.TimeoutError:
            self.serve_task.cancel()
            self.logger.warning("OSCQuery no se detuvo a tiempo, cancelado")
        self.server = None
        self.serve_task = None
        self.logger.info("[Client] OSCQuery detenido")

    def _ensure_node(self, path: str) -> QueryNode:
        node = self.root
        current = ""
        for part in [p for p in path.split("/") if p]:
            current = f"{current}/{part}"
            if part not in node.contents:
                node.contents[part] = QueryNode(current)
            node = node.contents[part]
        return node

    def _create_app(self) -> FastAPI:
        app = FastAPI(title="OSC Relay OSCQuery", docs_url=None, redoc_url=None, openapi_url=None)

        @app.get("/{path:path}")
        async def query(path: str, request: Request):
            if "HOST_INFO" in request.query_params:
                return self.host_info()

            node = self.find(path)
            if node is None:
                return JSONResponse(status_code=404, content={"detail": f"/{path} no existe"})

            data = node.to_dict()
            attributes = list(request.query_params.keys())
            if attributes:
                attribute = attributes[0].upper()
                if attribute not in data:
                    return Response(status_code=204)
                return {attribute: data[attribute]}
            return data

        return app
