"""Metrics Collector for the identity audit bridge.

This module provides Prometheus-style metrics collection for:
- Envelopes received (by category)
- Provider events counted by the statistics sink (by category, event type)
- Sink invocations, failures and latency (by sink)
- Audit trail writes that were dropped after a storage failure

Usage:
    from packages.metrics_collector import get_metrics_collector

    collector = get_metrics_collector()
    collector.increment_envelopes("AdminEvent")
    collector.record_sink_call("audit_store", 0.004, failed=False)

    # Get Prometheus format
    metrics_text = collector.export_prometheus()
"""

import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Optional

__all__ = ["LATENCY_WINDOW", "MetricsCollector", "get_metrics_collector", "set_metrics_collector"]

# Latency samples kept per sink for quantiles
LATENCY_WINDOW = 1000


def _quantile(sorted_values: list[float], q: float) -> float:
    return sorted_values[min(int(len(sorted_values) * q), len(sorted_values) - 1)]


@dataclass
class MetricsCollector:
    """Collect and export metrics in Prometheus format."""

    # Counters (monotonic increasing)
    envelope_count: dict[str, int] = field(default_factory=lambda: defaultdict(int))  # category -> count
    provider_event_count: dict[tuple[str, str], int] = field(default_factory=lambda: defaultdict(int))  # (category, type) -> count
    sink_call_count: dict[str, int] = field(default_factory=lambda: defaultdict(int))  # sink -> count
    sink_error_count: dict[str, int] = field(default_factory=lambda: defaultdict(int))  # sink -> count
    audit_write_failure_count: int = 0

    # Summaries (latencies in seconds): recent window for quantiles, running totals
    sink_latencies: dict[str, deque[float]] = field(
        default_factory=lambda: defaultdict(lambda: deque(maxlen=LATENCY_WINDOW))
    )
    sink_latency_count: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    sink_latency_sum: dict[str, float] = field(default_factory=lambda: defaultdict(float))

    # Lock for thread safety
    _lock: Lock = field(default_factory=Lock)

    # Start time for uptime
    _start_time: float = field(default_factory=time.time)

    def increment_envelopes(self, category: str) -> None:
        """Count one accepted envelope.

        Args:
            category: Envelope category (Event or AdminEvent)
        """
        with self._lock:
            self.envelope_count[category] += 1

    def increment_provider_event(self, category: str, event_type: str) -> None:
        """Count one decoded provider event.

        Args:
            category: Envelope category
            event_type: Provider event type (e.g. LOGIN) or operation type
        """
        with self._lock:
            self.provider_event_count[(category, event_type)] += 1

    def record_sink_call(self, sink: str, latency_seconds: float, failed: bool) -> None:
        """Record one sink invocation.

        Args:
            sink: Sink name
            latency_seconds: Wall time spent in the sink
            failed: Whether the sink raised
        """
        with self._lock:
            self.sink_call_count[sink] += 1
            self.sink_latencies[sink].append(latency_seconds)
            self.sink_latency_count[sink] += 1
            self.sink_latency_sum[sink] += latency_seconds
            if failed:
                self.sink_error_count[sink] += 1

    def increment_audit_write_failures(self) -> None:
        """Count one audit trail entry lost to a storage failure."""
        with self._lock:
            self.audit_write_failure_count += 1

    def get_uptime_seconds(self) -> float:
        """Get uptime in seconds since collector started."""
        return time.time() - self._start_time

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format.

        Returns:
            Prometheus-formatted metrics string
        """
        with self._lock:
            lines = []

            # Uptime
            lines.append("# HELP audit_bridge_uptime_seconds Uptime in seconds")
            lines.append("# TYPE audit_bridge_uptime_seconds gauge")
            lines.append(f"audit_bridge_uptime_seconds {self.get_uptime_seconds():.2f}")
            lines.append("")

            lines.append("# HELP audit_bridge_envelope_total Accepted envelopes by category")
            lines.append("# TYPE audit_bridge_envelope_total counter")
            for category, count in sorted(self.envelope_count.items()):
                lines.append(f'audit_bridge_envelope_total{{category="{category}"}} {count}')
            lines.append("")

            lines.append("# HELP audit_bridge_provider_event_total Provider events by category and type")
            lines.append("# TYPE audit_bridge_provider_event_total counter")
            for (category, event_type), count in sorted(self.provider_event_count.items()):
                lines.append(
                    f'audit_bridge_provider_event_total{{category="{category}",type="{event_type}"}} {count}'
                )
            lines.append("")

            lines.append("# HELP audit_bridge_sink_call_total Sink invocations")
            lines.append("# TYPE audit_bridge_sink_call_total counter")
            for sink, count in sorted(self.sink_call_count.items()):
                lines.append(f'audit_bridge_sink_call_total{{sink="{sink}"}} {count}')
            lines.append("")

            lines.append("# HELP audit_bridge_sink_error_total Sink invocations that raised")
            lines.append("# TYPE audit_bridge_sink_error_total counter")
            for sink, count in sorted(self.sink_error_count.items()):
                lines.append(f'audit_bridge_sink_error_total{{sink="{sink}"}} {count}')
            lines.append("")

            lines.append("# HELP audit_bridge_audit_write_failure_total Audit trail entries lost to storage errors")
            lines.append("# TYPE audit_bridge_audit_write_failure_total counter")
            lines.append(f"audit_bridge_audit_write_failure_total {self.audit_write_failure_count}")
            lines.append("")

            # Sink latency summaries
            if self.sink_latencies:
                lines.append("# HELP audit_bridge_sink_latency_seconds Sink latency")
                lines.append("# TYPE audit_bridge_sink_latency_seconds summary")
                for sink, latencies in sorted(self.sink_latencies.items()):
                    if not latencies:
                        continue
                    sorted_latencies = sorted(latencies)
                    lines.append(f'audit_bridge_sink_latency_seconds_count{{sink="{sink}"}} {self.sink_latency_count[sink]}')
                    lines.append(f'audit_bridge_sink_latency_seconds_sum{{sink="{sink}"}} {self.sink_latency_sum[sink]:.4f}')
                    for q in (0.5, 0.95, 0.99):
                        lines.append(
                            f'audit_bridge_sink_latency_seconds{{sink="{sink}",quantile="{q}"}} '
                            f"{_quantile(sorted_latencies, q):.4f}"
                        )
                lines.append("")

            return "\n".join(lines)


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None
_collector_lock = Lock()


def get_metrics_collector() -> MetricsCollector:
    """Get global metrics collector instance.

    Returns:
        Global MetricsCollector instance (creates if not exists)
    """
    global _metrics_collector

    if _metrics_collector is None:
        with _collector_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()

    return _metrics_collector


def set_metrics_collector(collector: MetricsCollector) -> None:
    """Set global metrics collector (for testing).

    Args:
        collector: MetricsCollector instance to use
    """
    global _metrics_collector

    with _collector_lock:
        _metrics_collector = collector
