"""Política de reconexión del Relay Link.

Retardo fijo entre intentos y presupuesto de intentos fallidos
(``-1`` = ilimitado).
"""

import asyncio
import logging

UNLIMITED = -1


class ReconnectPolicy:
    """Lleva la cuenta de intentos fallidos y el retardo entre ellos.

    - ``register_failure`` incrementa ``attempt`` exactamente una vez por fallo
    - ``reset`` se llama solo al llegar a CONNECTED
    - el retardo es fijo, no exponencial
    """

    def __init__(self, max_attempts: int = 3, retry_delay_ms: int = 5000):
        """Inicializa la política.

        Args:
            max_attempts: Máximo de intentos fallidos (-1 = ilimitado)
            retry_delay_ms: Retardo fijo entre intentos en milisegundos
        """
        if max_attempts < UNLIMITED:
            raise ValueError(f"max_attempts inválido: {max_attempts}")
        if retry_delay_ms < 0:
            raise ValueError(f"retry_delay_ms inválido: {retry_delay_ms}")

        self.max_attempts = max_attempts
        self.retry_delay_ms = retry_delay_ms
        self.logger = logging.getLogger(__name__)

        # Estado
        self.attempt = 0

    @property
    def unlimited(self) -> bool:
        return self.max_attempts == UNLIMITED

    @property
    def delay(self) -> float:
        """Retardo en segundos."""
        return self.retry_delay_ms / 1000.0

    @property
    def should_retry(self) -> bool:
        """True si aún queda presupuesto de reintentos."""
        return self.unlimited or self.attempt < self.max_attempts

    def reset(self):
        """Reinicia el contador de intentos."""
        self.attempt = 0

    def register_failure(self) -> bool:
        """Registra un intento fallido.

        Returns:
            True si se debe programar otro intento
        """
        self.attempt += 1
        return self.should_retry

    async def wait(self):
        """Espera el retardo fijo antes del siguiente intento."""
        budget = "∞" if self.unlimited else str(self.max_attempts)
        self.logger.info(f"Reintentando en {self.delay:.1f}s (intento {self.attempt}/{budget})")
        await asyncio.sleep(self.delay)

    def __repr__(self) -> str:
        return (
            f"ReconnectPolicy("
            f"attempt={self.attempt}/{self.max_attempts}, "
            f"delay={self.retry_delay_ms}ms"
            f")"
        )
