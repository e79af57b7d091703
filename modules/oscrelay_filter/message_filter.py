"""Filtro de mensajes por blacklist.

Cada canal (consola y transmisión) tiene su propia lista de patrones. Un
patrón es un prefijo de expresión regular terminado opcionalmente en ``*``:
el texto anterior al primer ``*`` debe coincidir desde el inicio de la
dirección y el resto de la dirección queda libre. Sin ``*`` se aplica la
misma regla: el patrón completo es el prefijo.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Pattern, Union

from core.entities.control_message import Channel, ControlMessage
from core.errors import InvalidFilterPattern

logger = logging.getLogger(__name__)

WILDCARD = "*"


@dataclass(frozen=True)
class FilterRule:
    """Patrón compilado de un canal."""
    pattern: str
    channel: Channel
    matcher: Pattern

    def matches(self, address: str) -> bool:
        return self.matcher.match(address) is not None


def compile_rule(pattern: str, channel: Channel) -> FilterRule:
    """Compilar un patrón glob a una regla.

    Args:
        pattern: Patrón configurado (``/avatar/parameters/Secret*``)
        channel: Canal al que pertenece

    Returns:
        FilterRule: Regla lista para evaluar direcciones

    Raises:
        InvalidFilterPattern: Si el patrón está vacío o no es una regex válida
    """
    if not isinstance(pattern, str) or not pattern.strip():
        raise InvalidFilterPattern(str(pattern), channel.value)

    star = pattern.find(WILDCARD)
    if star == -1:
        regex = pattern
    else:
        if pattern.count(WILDCARD) > 1:
            # Solo cuenta hasta el primer comodín
            logger.warning(
                f"Patrón '{pattern}' ({channel.value}) tiene más de un '*'; "
                f"solo se usa el prefijo '{pattern[:star]}'"
            )
        regex = pattern[:star]

    try:
        matcher = re.compile(regex)
    except re.error as e:
        raise InvalidFilterPattern(pattern, channel.value, e) from e

    return FilterRule(pattern=pattern, channel=channel, matcher=matcher)


class MessageFilter:
    """Decide por canal si una dirección OSC se registra o se transmite.

    Los patrones se compilan una sola vez en la construcción (o en
    ``reload``). Un patrón inválido se reporta una vez y se omite; nunca
    interrumpe el filtrado del resto.
    """

    def __init__(
        self,
        blacklists: Optional[Mapping[Union[str, Channel], Iterable[str]]] = None,
        on_invalid_pattern: Optional[Callable[[InvalidFilterPattern], None]] = None
    ):
        """Inicializa el filtro.

        Args:
            blacklists: Patrones por canal (``{"console": [...], "transmission": [...]}``)
            on_invalid_pattern: Callback opcional para patrones inválidos
        """
        self.on_invalid_pattern = on_invalid_pattern
        self._rules: Dict[Channel, List[FilterRule]] = {}
        self.invalid_patterns: List[InvalidFilterPattern] = []
        self.reload(blacklists or {})

    @classmethod
    def from_settings(cls, blacklist, on_invalid_pattern=None) -> "MessageFilter":
        """Crea el filtro desde ``BlacklistSettings``."""
        return cls(
            {
                Channel.CONSOLE: blacklist.console,
                Channel.TRANSMISSION: blacklist.transmission,
            },
            on_invalid_pattern=on_invalid_pattern,
        )

    def reload(self, blacklists: Mapping[Union[str, Channel], Iterable[str]]) -> None:
        """Reemplaza el conjunto de reglas compilando los nuevos patrones."""
        rules: Dict[Channel, List[FilterRule]] = {channel: [] for channel in Channel}
        invalid: List[InvalidFilterPattern] = []

        for key, patterns in blacklists.items():
            channel = Channel(key)
            for pattern in patterns or []:
                try:
                    rules[channel].append(compile_rule(pattern, channel))
                except InvalidFilterPattern as e:
                    invalid.append(e)
                    self._report_invalid(e)

        self._rules = rules
        self.invalid_patterns = invalid

    def _report_invalid(self, error: InvalidFilterPattern) -> None:
        logger.warning(f"{error}; la regla se ignora")
        if self.on_invalid_pattern:
            try:
                self.on_invalid_pattern(error)
            except Exception as e:
                logger.error(f"Error en callback de patrón inválido: {e}")

    def rules(self, channel: Union[str, Channel]) -> List[FilterRule]:
        return list(self._rules.get(Channel(channel), []))

    def allows(self, address: str, channel: Union[str, Channel]) -> bool:
        """True si ningún patrón del canal coincide con la dirección."""
        for rule in self._rules.get(Channel(channel), []):
            if rule.matches(address):
                return False
        return True

    def allows_message(self, message: ControlMessage, channel: Union[str, Channel]) -> bool:
        if not message.address:
            return False
        return self.allows(message.address, channel)

    def __repr__(self) -> str:
        counts = ", ".join(f"{ch.value}={len(r)}" for ch, r in self._rules.items())
        return f"MessageFilter({counts})"
