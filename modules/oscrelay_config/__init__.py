"""Módulo de configuración para OSC Relay.

Modelos Pydantic y carga/persistencia YAML de la configuración del
cliente (bridge) y del servidor (hub).
"""

from modules.oscrelay_config.settings import (
    ClientConfig,
    ServerConfig,
    ConnectionSettings,
    RelaySettings,
    LocalOSCSettings,
    BlacklistSettings,
    LoggingSettings,
)
from modules.oscrelay_config.loader import (
    load_config,
    load_client_config,
    load_server_config,
    save_config,
    ensure_user_id,
    generate_user_id,
)

__all__ = [
    "ClientConfig",
    "ServerConfig",
    "ConnectionSettings",
    "RelaySettings",
    "LocalOSCSettings",
    "BlacklistSettings",
    "LoggingSettings",
    "load_config",
    "load_client_config",
    "load_server_config",
    "save_config",
    "ensure_user_id",
    "generate_user_id",
]

__version__ = "1.0.0"
