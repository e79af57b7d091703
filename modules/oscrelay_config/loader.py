"""Carga y persistencia de la configuración YAML.

Un archivo inexistente produce la configuración por defecto; un archivo
ilegible o inválido lanza ``ConfigError``.
"""

import logging
import random
import string
from pathlib import Path
from typing import Type, TypeVar, Union

import yaml
from pydantic import BaseModel, ValidationError

from core.errors import ConfigError
from modules.oscrelay_config.settings import ClientConfig, ServerConfig

logger = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT", bound=BaseModel)

USER_ID_LENGTH = 8


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as e:
        raise ConfigError(str(path), "YAML inválido", e) from e
    except OSError as e:
        raise ConfigError(str(path), "no se pudo leer el archivo", e) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(str(path), "la raíz debe ser un mapa")
    return data


def load_config(path: Union[str, Path], model: Type[ConfigT]) -> ConfigT:
    """Cargar y validar un archivo de configuración.

    Args:
        path: Ruta al archivo YAML
        model: Modelo Pydantic a validar

    Returns:
        Configuración validada (por defecto si el archivo no existe)

    Raises:
        ConfigError: Si el archivo no se puede leer o no es válido
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Archivo de configuración {path} no encontrado, usando valores por defecto")
        return model()

    data = _read_yaml(path)
    try:
        config = model.model_validate(data)
    except ValidationError as e:
        raise ConfigError(str(path), f"{e.error_count()} errores de validación", e) from e

    logger.info(f"Configuración cargada desde {path}")
    return config


def save_config(path: Union[str, Path], config: BaseModel) -> None:
    """Guardar configuración en YAML usando los nombres camelCase."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(by_alias=True, mode="json")
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(data, fh, sort_keys=False, allow_unicode=True)
    logger.debug(f"Configuración guardada en {path}")


def generate_user_id(length: int = USER_ID_LENGTH) -> str:
    """Generar un identificador aleatorio en minúsculas y dígitos."""
    alphabet = string.ascii_lowercase + string.digits
    return "".join(random.choices(alphabet, k=length))


def ensure_user_id(config: ClientConfig) -> bool:
    """Asignar ``relay.user.id`` si falta.

    Returns:
        True si se generó un identificador nuevo
    """
    if config.relay.user.id:
        return False
    config.relay.user.id = generate_user_id()
    logger.info(f"Generado identificador de usuario: {config.relay.user.id}")
    return True


def load_client_config(path: Union[str, Path], persist: bool = True) -> ClientConfig:
    """Cargar la configuración del cliente garantizando un user id.

    Args:
        path: Ruta a ``Client-Config.yml``
        persist: Si guardar el archivo cuando se genera un id nuevo
    """
    config = load_config(path, ClientConfig)
    if ensure_user_id(config) and persist:
        try:
            save_config(path, config)
        except OSError as e:
            logger.error(f"No se pudo guardar la configuración: {e}")
    return config


def load_server_config(path: Union[str, Path]) -> ServerConfig:
    """Cargar la configuración del servidor."""
    return load_config(path, ServerConfig)
