"""Codificación OSC sobre python-osc.

``encode``/``decode`` son las primitivas de paquete usadas por el
transporte; los bundles se aplanan en la lista de mensajes que contienen.
"""

from typing import Iterable, List, Tuple

from pythonosc.osc_bundle import OscBundle
from pythonosc.osc_bundle import ParseError as BundleParseError
from pythonosc.osc_message import OscMessage
from pythonosc.osc_message import ParseError as MessageParseError
from pythonosc.osc_message_builder import BuildError, OscMessageBuilder

from core.errors import MalformedMessage


def build_message(address: str, args: Iterable) -> OscMessage:
    """Construye un OscMessage infiriendo el tipo de cada argumento.

    Raises:
        MalformedMessage: Si la dirección o algún argumento no se puede codificar
    """
    try:
        builder = OscMessageBuilder(address=address)
        for arg in args:
            builder.add_arg(arg)
        return builder.build()
    except (BuildError, ValueError, TypeError) as e:
        raise MalformedMessage("no se pudo codificar", address, e) from e


def encode(address: str, args: Iterable) -> bytes:
    """Codifica dirección + argumentos a un datagrama OSC."""
    return build_message(address, args).dgram


def _flatten(content) -> List[Tuple[str, list]]:
    if isinstance(content, OscBundle):
        messages = []
        for item in content:
            messages.extend(_flatten(item))
        return messages
    return [(content.address, list(content.params))]


def decode(dgram: bytes) -> List[Tuple[str, list]]:
    """Decodifica un datagrama OSC (mensaje o bundle).

    Returns:
        Lista de tuplas ``(address, args)``

    Raises:
        MalformedMessage: Si el datagrama no es OSC válido
    """
    try:
        if OscBundle.dgram_is_bundle(dgram):
            return _flatten(OscBundle(dgram))
        if OscMessage.dgram_is_message(dgram):
            return _flatten(OscMessage(dgram))
    except (MessageParseError, BundleParseError) as e:
        raise MalformedMessage("datagrama OSC inválido", dgram, e) from e

    raise MalformedMessage("no es un mensaje ni un bundle OSC", dgram)
