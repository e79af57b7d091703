"""Relay bus wire format.

Messages travel as JSON objects with a ``type`` tag. They are decoded once,
at the bus boundary, into one pydantic model per variant.
"""

from typing import Annotated, List, Optional, Union, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
)

from core.entities.control_message import ControlMessage, MessageType
from core.errors import MalformedMessage

OSCScalar = Union[StrictBool, StrictInt, StrictFloat, StrictStr]


class _WireModel(BaseModel):
    """Shared settings: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class IdentifyMessage(_WireModel):
    """Handshake sent by a link right after connecting."""
    type: Literal["identify"] = "identify"
    user_id: str = Field(..., alias="userId")


class SubscribeMessage(_WireModel):
    """Declares interest in inbound tunnel traffic."""
    type: Literal["osc_subscribe"] = "osc_subscribe"
    user_id: Optional[str] = Field(None, alias="userId")


class TunnelMessage(_WireModel):
    """A control message wrapped for transport across the bus."""
    type: Literal["osc_tunnel"] = "osc_tunnel"
    address: str = Field(..., min_length=1)
    args: List[OSCScalar]
    user_id: str = Field("", alias="userId")
    source: str = ""
    relayed: bool = False

    def to_control_message(self) -> ControlMessage:
        return ControlMessage(
            address=self.address,
            args=tuple(self.args),
            source=self.source,
            user_id=self.user_id,
            relayed=self.relayed,
            type=MessageType.TUNNEL,
        )


class ParameterUpdateMessage(_WireModel):
    """Single-value parameter change."""
    type: Literal["parameter_update"] = "parameter_update"
    address: str = Field(..., min_length=1)
    value: Optional[OSCScalar] = None
    user_id: str = Field("", alias="userId")
    source: str = ""
    relayed: bool = False

    def to_control_message(self) -> ControlMessage:
        args = () if self.value is None else (self.value,)
        return ControlMessage(
            address=self.address,
            args=args,
            source=self.source,
            user_id=self.user_id,
            relayed=self.relayed,
            type=MessageType.PARAMETER_UPDATE,
        )


WireMessage = Annotated[
    Union[IdentifyMessage, SubscribeMessage, TunnelMessage, ParameterUpdateMessage],
    Field(discriminator="type"),
]

_wire_adapter: TypeAdapter = TypeAdapter(WireMessage)


def decode_wire(raw: Union[str, bytes]) -> WireMessage:
    """Parse raw bus data into its message variant.

    Raises:
        MalformedMessage: invalid JSON, unknown ``type`` or missing fields.
    """
    try:
        return _wire_adapter.validate_json(raw)
    except ValidationError as e:
        reason = e.errors()[0]["type"] if e.errors() else "validation"
        raise MalformedMessage(reason, raw, e) from e


def to_wire(message: ControlMessage) -> _WireModel:
    """Build the wire model for a control message."""
    if message.type == MessageType.IDENTIFY:
        return IdentifyMessage(user_id=message.user_id)
    if message.type == MessageType.SUBSCRIBE:
        return SubscribeMessage(user_id=message.user_id or None)
    if message.type == MessageType.PARAMETER_UPDATE:
        return ParameterUpdateMessage(
            address=message.address,
            value=message.args[0] if message.args else None,
            user_id=message.user_id,
            source=message.source,
            relayed=message.relayed,
        )
    return TunnelMessage(
        address=message.address,
        args=list(message.args),
        user_id=message.user_id,
        source=message.source,
        relayed=message.relayed,
    )


def encode_wire(message: Union[ControlMessage, _WireModel]) -> str:
    """Serialize a control message or wire model to JSON text."""
    if isinstance(message, ControlMessage):
        message = to_wire(message)
    return message.to_json()
