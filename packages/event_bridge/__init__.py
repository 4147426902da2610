"""Event bridge package.

Ingestion pipeline for identity provider events: envelope validation,
payload decoding, sinks with their cross-cutting wrappers, and the
dispatcher that fans events out to them.
"""

from .dispatcher import DispatchReport, EventDispatcher, SinkRegistry, UnknownCategoryError
from .middleware import InstrumentingSink, LoggingSink, TracingSink, build_sink_chain
from .payload import (
    AuthDetails,
    EventCategory,
    PayloadDecodeError,
    ProviderAdminEvent,
    ProviderEvent,
    decode_provider_event,
    to_audit_event,
)
from .receiver import EnvelopeValidationError, EventEnvelope, EventRequest, receive
from .sinks import AuditStoreSink, ConsoleSink, EventContext, Sink, StatisticsSink

__all__ = [
    "AuditStoreSink",
    "AuthDetails",
    "ConsoleSink",
    "DispatchReport",
    "EnvelopeValidationError",
    "EventCategory",
    "EventContext",
    "EventDispatcher",
    "EventEnvelope",
    "EventRequest",
    "InstrumentingSink",
    "LoggingSink",
    "PayloadDecodeError",
    "ProviderAdminEvent",
    "ProviderEvent",
    "Sink",
    "SinkRegistry",
    "StatisticsSink",
    "TracingSink",
    "UnknownCategoryError",
    "build_sink_chain",
    "decode_provider_event",
    "receive",
    "to_audit_event",
]
