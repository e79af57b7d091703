"""Excepciones específicas del OSC Relay.

Este módulo define las excepciones del motor de relay, con mensajes de error
legibles y la excepción original adjunta cuando existe.
"""

from typing import Optional


class RelayError(Exception):
    """Excepción base para errores del relay.

    Todas las excepciones específicas del OSC Relay heredan de esta clase.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        """Inicializa la excepción base.

        Args:
            message: Mensaje de error legible
            original_error: Excepción original que causó este error
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Retorna representación string del error."""
        if self.original_error:
            return f"{self.message} (Causa: {self.original_error})"
        return self.message


class PortUnavailable(RelayError):
    """Error cuando un puerto UDP/HTTP no se puede enlazar.

    Se lanza cuando:
    - El puerto ya está en uso por otra aplicación
    - No hay permisos para enlazar el puerto
    """

    def __init__(self, port: int, host: str = "127.0.0.1", original_error: Optional[Exception] = None):
        """Inicializa error de puerto no disponible.

        Args:
            port: Puerto que no se pudo enlazar
            host: Dirección local de enlace
            original_error: Excepción original
        """
        message = f"Puerto {host}:{port} no disponible"
        super().__init__(message, original_error)
        self.port = port
        self.host = host


class ConnectFailed(RelayError):
    """Error cuando la conexión al bus de relay es rechazada o reiniciada."""

    def __init__(self, url: str, original_error: Optional[Exception] = None):
        message = f"No se pudo conectar al relay en {url}"
        super().__init__(message, original_error)
        self.url = url


class MaxRetriesExceeded(RelayError):
    """Error cuando el Relay Link agota su presupuesto de reintentos.

    Es el único error que llega al límite del proceso como fatal.
    """

    def __init__(self, attempts: int, max_attempts: int, original_error: Optional[Exception] = None):
        """Inicializa error de reintentos agotados.

        Args:
            attempts: Intentos fallidos realizados
            max_attempts: Máximo de intentos configurado
            original_error: Excepción original
        """
        message = f"Máximo de intentos de reconexión alcanzado ({attempts}/{max_attempts})"
        super().__init__(message, original_error)
        self.attempts = attempts
        self.max_attempts = max_attempts


class MalformedMessage(RelayError):
    """Error de parseo de datos entrantes (JSON del bus o paquete OSC)."""

    def __init__(self, reason: str, raw: Optional[object] = None, original_error: Optional[Exception] = None):
        """Inicializa error de mensaje malformado.

        Args:
            reason: Razón del fallo de parseo
            raw: Datos recibidos (se recortan en el mensaje)
            original_error: Excepción original
        """
        preview = ""
        if raw is not None:
            preview = f": {str(raw)[:80]!r}"
        message = f"Mensaje malformado ({reason}){preview}"
        super().__init__(message, original_error)
        self.reason = reason
        self.raw = raw


class InvalidFilterPattern(RelayError):
    """Error cuando un patrón de blacklist no se puede compilar."""

    def __init__(self, pattern: str, channel: str, original_error: Optional[Exception] = None):
        message = f"Patrón de blacklist inválido en canal '{channel}': {pattern!r}"
        super().__init__(message, original_error)
        self.pattern = pattern
        self.channel = channel


class ConfigError(RelayError):
    """Error al cargar o validar un archivo de configuración."""

    def __init__(self, path: str, reason: str, original_error: Optional[Exception] = None):
        message = f"Configuración inválida en {path}: {reason}"
        super().__init__(message, original_error)
        self.path = path
        self.reason = reason

