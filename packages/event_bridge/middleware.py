"""Cross-cutting wrappers around sinks.

Each wrapper implements the sink protocol and delegates to the sink it
wraps. ``build_sink_chain`` assembles them in a fixed order, outermost
first: tracing, logging, instrumenting. Instrumenting sits closest to the
sink so that latency excludes logging; logging sits outside it so that
failures are logged with the span bound by tracing.
"""

import time

import structlog

from packages.metrics_collector import MetricsCollector
from packages.structured_logging import get_logger

from .sinks import EventContext, Sink

logger = get_logger(__name__)


class TracingSink:
    """Binds a span name and the correlation ID for the duration of a call."""

    def __init__(self, inner: Sink) -> None:
        self._inner = inner
        self.name = inner.name

    def handle(self, ctx: EventContext, payload: bytes) -> None:
        with structlog.contextvars.bound_contextvars(
            span=f"{self.name}_sink",
            correlation_id=ctx.correlation_id,
        ):
            self._inner.handle(ctx, payload)


class LoggingSink:
    """Logs the outcome of each call; failures are logged then re-raised."""

    def __init__(self, inner: Sink, log=None) -> None:
        self._inner = inner
        self._logger = log or logger
        self.name = inner.name

    def handle(self, ctx: EventContext, payload: bytes) -> None:
        try:
            self._inner.handle(ctx, payload)
        except Exception as e:
            self._logger.error(
                "sink_failed",
                sink=self.name,
                category=ctx.category.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        self._logger.debug("sink_handled", sink=self.name, category=ctx.category.value)


class InstrumentingSink:
    """Records latency and failures of each call in the metrics collector."""

    def __init__(self, inner: Sink, metrics: MetricsCollector) -> None:
        self._inner = inner
        self._metrics = metrics
        self.name = inner.name

    def handle(self, ctx: EventContext, payload: bytes) -> None:
        start = time.perf_counter()
        failed = True
        try:
            self._inner.handle(ctx, payload)
            failed = False
        finally:
            self._metrics.record_sink_call(self.name, time.perf_counter() - start, failed)


def build_sink_chain(sink: Sink, metrics: MetricsCollector, log=None) -> Sink:
    """Wrap a sink as tracing(logging(instrumenting(sink)))."""
    wrapped: Sink = InstrumentingSink(sink, metrics)
    wrapped = LoggingSink(wrapped, log)
    return TracingSink(wrapped)
