"""Configuración de logging del OSC Relay.

Consola con rich (con supresión de líneas repetidas) y archivo con marca
de tiempo por ejecución.
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DUPLICATE_TTL = 5.0

_installed_handlers: List[logging.Handler] = []


class DuplicateMessageFilter(logging.Filter):
    """Descarta registros idénticos repetidos dentro de ``ttl`` segundos."""

    def __init__(self, ttl: float = DUPLICATE_TTL, clock: Callable[[], float] = time.monotonic):
        super().__init__()
        self.ttl = ttl
        self.clock = clock
        self.suppressed = 0
        self._last_seen: Dict[str, float] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        key = f"{record.levelname}:{record.name}:{record.getMessage()}"
        now = self.clock()
        last = self._last_seen.get(key)

        if last is not None and now - last < self.ttl:
            self.suppressed += 1
            return False

        self._last_seen[key] = now
        if len(self._last_seen) > 1000:
            self._last_seen = {k: t for k, t in self._last_seen.items() if now - t < self.ttl}
        return True


def setup_logging(
    log_dir: Union[str, Path] = "logs",
    level: Union[str, int] = "INFO",
    console: bool = True,
    prefix: str = "osc_relay"
) -> Optional[Path]:
    """Instala los handlers de consola y archivo en el logger raíz.

    Args:
        log_dir: Directorio del archivo de log
        level: Nivel mínimo
        console: Instalar handler de consola rich
        prefix: Prefijo del nombre del archivo

    Returns:
        Ruta del archivo de log, o None si no se pudo crear
    """
    shutdown_logging()

    root = logging.getLogger()
    root.setLevel(level)

    if console:
        console_handler = RichHandler(rich_tracebacks=True, show_path=False)
        console_handler.addFilter(DuplicateMessageFilter())
        root.addHandler(console_handler)
        _installed_handlers.append(console_handler)

    log_file: Optional[Path] = None
    try:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().isoformat().replace(":", "-").replace(".", "-")
        log_file = log_path / f"{prefix}_{stamp}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)
        _installed_handlers.append(file_handler)
    except OSError as e:
        log_file = None
        logging.getLogger(__name__).error(f"No se pudo crear el archivo de log en {log_dir}: {e}")

    return log_file


def shutdown_logging() -> None:
    """Vacía y retira los handlers instalados por ``setup_logging``."""
    root = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        handler.flush()
        root.removeHandler(handler)
        handler.close()
