"""Registro estructurado de eventos OSC.

Escribe una línea JSON por mensaje enviado o recibido. Es un canal
lateral: un fallo de escritura se registra y nunca afecta al envío.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class OSCEventLogger:
    """Logger JSON-lines de tráfico OSC."""

    def __init__(self, log_dir: Union[str, Path] = "logs/osc"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().isoformat().replace(":", "-").replace(".", "-")
        self.log_file = self.log_dir / f"osc_events_{stamp}.log"
        self.events_written = 0

    def log_event(
        self,
        direction: str,
        sender: str,
        receiver: str,
        param: str,
        value: Any,
        user: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> None:
        """Añade un evento al archivo.

        Args:
            direction: ``incoming`` u ``outgoing``
            sender: Origen del mensaje (IP o identificador)
            receiver: Destino (puerto o identificador)
            param: Dirección OSC
            value: Argumentos del mensaje
            user: Usuario lógico asociado
            timestamp: Momento del evento (ahora por defecto)
        """
        entry = {
            "time": (timestamp or datetime.now()).isoformat(),
            "direction": direction,
            "sender": sender,
            "receiver": receiver,
            "param": param,
            "value": value,
            "user": user or "",
        }
        try:
            with open(self.log_file, "a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, default=str) + "\n")
            self.events_written += 1
        except OSError as e:
            logger.error(f"No se pudo escribir evento OSC en {self.log_file}: {e}")
