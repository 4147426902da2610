"""Event receiver: validates inbound envelopes from the identity provider."""

import base64
import binascii
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from .payload import EventCategory

MIN_PAYLOAD_LENGTH = 4


class EnvelopeValidationError(Exception):
    """Raised when an envelope is malformed. Nothing is dispatched."""

    def __init__(self, param: str) -> None:
        self.param = param
        super().__init__(f"invalidArgument.{param}")


class EventEnvelope(BaseModel):
    """Transport wrapper posted by the provider: ``{"Type": ..., "Obj": ...}``."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field("", alias="Type")
    obj: str = Field("", alias="Obj")


@dataclass(frozen=True)
class EventRequest:
    """A validated envelope: its category and decoded payload."""

    category: EventCategory
    payload: bytes


def receive(envelope: EventEnvelope) -> EventRequest:
    """
    Validate and decode an envelope.

    Args:
        envelope: Parsed envelope body

    Returns:
        EventRequest ready for dispatch

    Raises:
        EnvelopeValidationError: ``type`` for an unknown category,
            ``encoding`` when Obj is not base64, ``length`` when the
            decoded payload is shorter than 4 bytes
    """
    try:
        category = EventCategory(envelope.type)
    except ValueError:
        raise EnvelopeValidationError("type")

    try:
        payload = base64.b64decode(envelope.obj, validate=True)
    except (binascii.Error, ValueError):
        raise EnvelopeValidationError("encoding")

    if len(payload) < MIN_PAYLOAD_LENGTH:
        raise EnvelopeValidationError("length")

    return EventRequest(category=category, payload=payload)
