"""
Envelope models for the signaling wire protocol.

Clients exchange JSON text frames with the relay. Two inbound shapes are
understood: a register envelope claiming an identity, and a signal envelope
routed by its ``from``/``to`` fields. Everything else in a signal envelope
is opaque payload that the relay forwards without inspecting.
"""

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError

from signal_relay.constants import (
    ERROR_TYPE,
    RECIPIENT_NOT_AVAILABLE,
    REGISTER_TYPE,
    SERVER_SENDER_ID,
)
from signal_relay.exceptions import EnvelopeError

NonEmptyStr = Annotated[str, StringConstraints(strict=True, min_length=1)]


class RegisterEnvelope(BaseModel):
    """Client request to be reachable under ``userId``."""

    model_config = ConfigDict(extra="allow")

    type: Literal["register"]
    user_id: NonEmptyStr = Field(alias="userId")


class SignalEnvelope(BaseModel):
    """
    Routable envelope carrying an opaque negotiation payload.

    Only ``type``, ``from`` and ``to`` are validated; any other field is
    kept as an extra and never looked at by the relay.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: NonEmptyStr
    sender: NonEmptyStr = Field(alias="from")
    recipient: NonEmptyStr = Field(alias="to")


class ErrorEnvelope(BaseModel):
    """Server reply sent back to the originator of an undeliverable signal."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["error"] = ERROR_TYPE
    message: str
    sender: str = Field(default=SERVER_SENDER_ID, alias="from")
    recipient: str = Field(alias="to")

    @classmethod
    def recipient_not_available(cls, sender: str) -> "ErrorEnvelope":
        """
        Build the routing-failure reply for a signal sent by ``sender``.

        The reply is addressed to the original sender, not to the identity
        that could not be reached.
        """
        return cls(message=RECIPIENT_NOT_AVAILABLE, recipient=sender)

    def to_text(self) -> str:
        """Serialize using wire field names."""
        return self.model_dump_json(by_alias=True)


Envelope = RegisterEnvelope | SignalEnvelope


def decode_frame(raw: str | bytes) -> str:
    """
    Return the frame as text.

    Raises:
        EnvelopeError: If a binary frame is not valid UTF-8.
    """
    if isinstance(raw, bytes):
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as ex:
            raise EnvelopeError(f"Frame is not valid UTF-8: {ex}") from ex
    return raw


def decode_envelope(text: str) -> Envelope:
    """
    Parse a text frame into a register or signal envelope.

    A register envelope wins when a frame matches both shapes. A frame typed
    ``register`` without a usable ``userId`` is still checked against the
    signal shape.

    Raises:
        EnvelopeError: If the frame is not a JSON object or matches neither
            shape.
    """
    try:
        data: Any = json.loads(text)
    except ValueError as ex:
        raise EnvelopeError(f"Frame is not valid JSON: {ex}") from ex

    if not isinstance(data, dict):
        raise EnvelopeError(
            f"Frame must be a JSON object, got {type(data).__name__}"
        )

    if data.get("type") == REGISTER_TYPE:
        try:
            return RegisterEnvelope.model_validate(data)
        except ValidationError:
            pass

    try:
        return SignalEnvelope.model_validate(data)
    except ValidationError as ex:
        raise EnvelopeError(
            f"Frame lacks routing fields: {ex.error_count()} validation error(s)"
        ) from ex
