"""Event dispatcher: fans one accepted event out to every registered sink."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from packages.structured_logging import get_logger

from .payload import EventCategory
from .receiver import EventRequest
from .sinks import EventContext, Sink

logger = get_logger(__name__)


class UnknownCategoryError(Exception):
    """Raised when no sinks are registered for a category."""
    pass


@dataclass(frozen=True)
class SinkRegistry:
    """
    Per-category ordered sink lists, built once at startup.

    The mapping is read-only; build a new registry to change it.
    """

    sinks: Mapping[EventCategory, tuple[Sink, ...]]

    @classmethod
    def build(cls, sinks: Mapping[EventCategory, Iterable[Sink]]) -> "SinkRegistry":
        frozen = {category: tuple(entries) for category, entries in sinks.items()}
        return cls(sinks=MappingProxyType(frozen))

    def for_category(self, category: EventCategory) -> tuple[Sink, ...]:
        entries = self.sinks.get(category, ())
        if not entries:
            raise UnknownCategoryError(f"No sinks registered for {category.value}")
        return entries


@dataclass
class DispatchReport:
    """Which sinks ran and which of them failed."""

    invoked: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class EventDispatcher:
    """
    Broadcasts events to sinks sequentially, in registration order.

    A failing sink neither stops the following sinks nor makes dispatch
    fail: recording the failure is the job of each sink's wrappers.
    """

    def __init__(self, registry: SinkRegistry) -> None:
        self._registry = registry

    def dispatch(self, ctx: EventContext, request: EventRequest) -> DispatchReport:
        """
        Invoke every sink registered for the request's category once.

        Raises:
            UnknownCategoryError: Before fan-out, if nothing is registered
        """
        sinks = self._registry.for_category(request.category)

        report = DispatchReport()
        for sink in sinks:
            report.invoked.append(sink.name)
            try:
                sink.handle(ctx, request.payload)
            except Exception:
                report.failed.append(sink.name)

        if report.failed:
            logger.warning(
                "dispatch_partial_failure",
                category=request.category.value,
                failed=report.failed,
            )
        return report
