"""Control message domain entity."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Tuple, Union

OSCArg = Union[bool, int, float, str]


class MessageType(Enum):
    """Kinds of messages exchanged over the relay bus."""
    TUNNEL = "osc_tunnel"
    PARAMETER_UPDATE = "parameter_update"
    IDENTIFY = "identify"
    SUBSCRIBE = "osc_subscribe"


class Channel(Enum):
    """Filter channels queried independently for every message."""
    CONSOLE = "console"
    TRANSMISSION = "transmission"


@dataclass(frozen=True)
class ControlMessage:
    """An OSC address plus typed arguments, tagged with provenance.

    ``relayed`` works as a single-hop TTL: once a message has crossed the
    bus it is marked and never submitted to the bus again.
    """

    address: str
    args: Tuple[OSCArg, ...] = ()
    source: str = ""
    user_id: str = ""
    relayed: bool = False
    type: MessageType = MessageType.PARAMETER_UPDATE
    received_at: datetime = field(default_factory=datetime.now, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))
        for arg in self.args:
            if not isinstance(arg, (bool, int, float, str)):
                raise ValueError(
                    f"Unsupported OSC argument {arg!r} ({type(arg).__name__}) for {self.address}"
                )

    @classmethod
    def local(cls, address: str, args, source: str = "") -> "ControlMessage":
        """Create a message observed on the local UDP transport."""
        return cls(
            address=address,
            args=tuple(args),
            source=source,
            type=MessageType.PARAMETER_UPDATE,
        )

    def as_relayed(self, user_id: str) -> "ControlMessage":
        """Return the tunnel copy sent to the bus on behalf of ``user_id``."""
        return replace(
            self,
            relayed=True,
            type=MessageType.TUNNEL,
            user_id=user_id,
        )

    @property
    def is_tunnel(self) -> bool:
        return self.type == MessageType.TUNNEL

    def describe_args(self) -> str:
        """Render arguments the way log lines show them: ``[a, b]``."""
        return "[" + ", ".join(str(arg) for arg in self.args) + "]"
