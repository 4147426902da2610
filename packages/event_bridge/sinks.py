"""Sinks receiving every accepted provider event.

A sink is anything with a ``name`` and ``handle(ctx, payload)``. Raising
from ``handle`` signals failure; the dispatcher isolates it from the other
sinks and from the caller.
"""

from dataclasses import dataclass
from typing import Protocol

from packages.audit_store import AuditStore
from packages.metrics_collector import MetricsCollector
from packages.structured_logging import get_logger

from .payload import EventCategory, decode_provider_event, to_audit_event

logger = get_logger(__name__)


@dataclass(frozen=True)
class EventContext:
    """Per-delivery context shared by every sink of one dispatch."""

    category: EventCategory
    correlation_id: str = ""


class Sink(Protocol):
    """Capability implemented by console, statistics and audit-store sinks."""

    name: str

    def handle(self, ctx: EventContext, payload: bytes) -> None:
        """Process one event payload.

        Raises:
            Exception: Any failure; recorded by the wrappers, isolated by
                the dispatcher.
        """
        ...


class ConsoleSink:
    """Writes a diagnostic log line per provider event."""

    name = "console"

    def __init__(self, log=None) -> None:
        self._logger = log or logger

    def handle(self, ctx: EventContext, payload: bytes) -> None:
        event = decode_provider_event(ctx.category, payload)
        self._logger.info(
            "provider_event",
            category=ctx.category.value,
            event_type=event.event_type,
            realm=event.realm_id,
            provider_event=event.model_dump(by_alias=True, exclude_none=True),
        )


class StatisticsSink:
    """Counts provider events per category and type."""

    name = "statistics"

    def __init__(self, metrics: MetricsCollector) -> None:
        self._metrics = metrics

    def handle(self, ctx: EventContext, payload: bytes) -> None:
        event = decode_provider_event(ctx.category, payload)
        event_type = event.event_type
        if ctx.category == EventCategory.ADMIN_EVENT:
            event_type = f"{event_type}_{event.operation_type}"
        self._metrics.increment_provider_event(ctx.category.value, event_type)


class AuditStoreSink:
    """Persists provider events as audit rows."""

    name = "audit_store"

    def __init__(self, store: AuditStore, origin: str = "keycloak") -> None:
        self._store = store
        self._origin = origin

    def handle(self, ctx: EventContext, payload: bytes) -> None:
        event = decode_provider_event(ctx.category, payload)
        self._store.store(to_audit_event(event, self._origin))
