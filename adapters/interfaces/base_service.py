"""Base service interfaces for OSC Relay.

Define interfaces comunes para servicios y colaboradores externos del
orquestador, evitando dependencias circulares.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from enum import Enum


class ServiceStatus(Enum):
    """Estados posibles de un servicio."""
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class BaseService(ABC):
    """Interfaz base para los servicios de proceso (cliente y hub)."""
    
    def __init__(self):
        self._status = ServiceStatus.STOPPED
        self._error_message: Optional[str] = None
        
    @property
    def status(self) -> ServiceStatus:
        """Estado actual del servicio."""
        return self._status
        
    @property
    def error_message(self) -> Optional[str]:
        """Mensaje de error si el servicio está en estado ERROR."""
        return self._error_message
        
    @property
    def is_running(self) -> bool:
        """True si el servicio está ejecutándose."""
        return self._status == ServiceStatus.RUNNING
        
    @abstractmethod
    async def initialize(self) -> None:
        """Inicializa el servicio."""
        pass
        
    @abstractmethod
    async def start(self) -> None:
        """Inicia el servicio."""
        pass
        
    @abstractmethod
    async def stop(self) -> None:
        """Detiene el servicio."""
        pass
        
    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Verifica el estado de salud del servicio."""
        pass
        
    async def restart(self) -> None:
        """Reinicia el servicio."""
        await self.stop()
        await self.start()
        
    def _set_status(self, status: ServiceStatus, error_message: Optional[str] = None) -> None:
        """Establece el estado del servicio."""
        self._status = status
        self._error_message = error_message
        

class QueryAdvertiserInterface(ABC):
    """Interfaz del componente de descubrimiento (OSCQuery).
    
    El orquestador solo publica valores de estado; nunca depende de los
    valores de retorno para su correctitud.
    """
    
    @abstractmethod
    def add_method(
        self,
        path: str,
        description: str = "",
        access: int = 3,
        arguments: Optional[List[Dict[str, Any]]] = None
    ) -> None:
        """Declara un nodo del árbol de descubrimiento."""
        pass
        
    @abstractmethod
    def set_value(self, path: str, index: int, value: Any) -> None:
        """Actualiza el valor de un argumento de un nodo."""
        pass
        
    @abstractmethod
    async def start(self) -> None:
        """Inicia el servicio de descubrimiento."""
        pass
        
    @abstractmethod
    async def stop(self) -> None:
        """Detiene el servicio de descubrimiento."""
        pass
