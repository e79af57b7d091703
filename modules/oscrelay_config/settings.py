"""Modelos de configuración del OSC Relay.

Este módulo contiene los modelos Pydantic que validan los archivos
``Client-Config.yml`` y ``Server-Config.yml``. Los nombres de campo en YAML
usan camelCase (``sendPort``, ``retryDelay``) igual que los archivos
existentes del relay.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_RELAY_PORT = 4953


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )


class ConnectionSettings(_ConfigModel):
    """Política de reconexión del Relay Link."""

    retries: int = Field(
        3,
        description="Máximo de intentos fallidos antes de rendirse (-1 = infinito)"
    )
    retry_delay: int = Field(
        5000,
        alias="retryDelay",
        ge=0,
        description="Espera fija entre intentos en milisegundos"
    )

    @field_validator('retries')
    @classmethod
    def validate_retries(cls, v):
        """Validar presupuesto de reintentos.

        Raises:
            ValueError: Si es negativo y distinto de -1
        """
        if v < -1:
            raise ValueError("retries debe ser -1 (infinito) o >= 0")
        return v


class UserSettings(_ConfigModel):
    """Identidad lógica del emisor."""

    name: str = ""
    id: str = ""


class RelaySettings(_ConfigModel):
    """Conexión al Relay Hub."""

    host: str = "localhost"
    port: int = Field(DEFAULT_RELAY_PORT, ge=1, le=65535)
    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    user: UserSettings = Field(default_factory=UserSettings)
    subscribe: bool = True

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"


class LocalOSCSettings(_ConfigModel):
    """Puertos UDP locales de la aplicación controlada."""

    ip: str = "127.0.0.1"
    send_port: Optional[int] = Field(9000, alias="sendPort", ge=0, le=65535)
    receive_port: int = Field(9001, alias="receivePort", ge=1, le=65535)
    query_port: int = Field(9012, alias="queryPort", ge=0, le=65535)
    receive_port_attempts: int = Field(10, alias="receivePortAttempts", ge=1)


class OSCSettings(_ConfigModel):
    local: LocalOSCSettings = Field(default_factory=LocalOSCSettings)


class BlacklistSettings(_ConfigModel):
    """Patrones glob por canal (``*`` = cualquier sufijo)."""

    console: List[str] = Field(default_factory=list)
    transmission: List[str] = Field(default_factory=list)

    @field_validator('console', 'transmission', mode='before')
    @classmethod
    def none_as_empty(cls, v):
        # YAML deja ``console:`` sin valor como None
        return v or []


class FilterSettings(_ConfigModel):
    blacklist: BlacklistSettings = Field(default_factory=BlacklistSettings)


class OSCLoggingSettings(_ConfigModel):
    incoming: bool = True
    outgoing: bool = True
    events: bool = False


class LoggingSettings(_ConfigModel):
    path: str = "logs/client"
    level: str = "INFO"
    osc: OSCLoggingSettings = Field(default_factory=OSCLoggingSettings)

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Normalizar nivel de logging a mayúsculas."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Nivel de logging inválido: {v}")
        return level


class ClientConfig(_ConfigModel):
    """Configuración completa del proceso cliente (bridge)."""

    relay: RelaySettings = Field(default_factory=RelaySettings)
    osc: OSCSettings = Field(default_factory=OSCSettings)
    filters: FilterSettings = Field(default_factory=FilterSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def effective_user_id(self) -> str:
        """Identidad usada en identify y en los mensajes tunelizados."""
        user = self.relay.user
        return user.name or f"default-{user.id}"


class ServerSettings(_ConfigModel):
    host: str = "0.0.0.0"
    port: int = Field(DEFAULT_RELAY_PORT, ge=1, le=65535)


class ServerConfig(_ConfigModel):
    """Configuración del proceso servidor (hub)."""

    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(
        default_factory=lambda: LoggingSettings(path="logs/server")
    )
