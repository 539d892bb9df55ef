"""
Delivery metrics for cwtransport.

Implements minimal Prometheus-compatible counters and a latency histogram
for the delivery engine.

Design goals:
- Zero global state; instances are dispatcher-scoped with an isolated registry
- Safe no-op exporter behavior when metrics are disabled by settings, while
  still tracking in-memory counters for tests
- Callable from ingestion threads as well as the event loop
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class DeliveryMetrics:
    """Captured runtime counters for quick assertions in tests."""

    batches_delivered: int = 0
    batches_failed: int = 0
    events_delivered: int = 0
    events_dropped: int = 0
    ordering_conflicts: int = 0
    delivery_errors: int = 0


class MetricsCollector:
    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._state = DeliveryMetrics()

        self._c_batches: Any | None = None
        self._c_events: Any | None = None
        self._c_dropped: Any | None = None
        self._c_conflicts: Any | None = None
        self._c_errors: Any | None = None
        self._h_put_latency: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            # Isolated registry avoids duplicate registration across instances
            self._registry = CollectorRegistry()
            self._c_batches = Counter(
                "cwtransport_batches_total",
                "Batches that reached a final delivery outcome",
                ["outcome"],
                registry=self._registry,
            )
            self._c_events = Counter(
                "cwtransport_events_delivered_total",
                "Events accepted by CloudWatch Logs",
                registry=self._registry,
            )
            self._c_dropped = Counter(
                "cwtransport_events_dropped_total",
                "Events dropped before or during delivery",
                registry=self._registry,
            )
            self._c_conflicts = Counter(
                "cwtransport_ordering_conflicts_total",
                "Sequence token conflicts reported by the service",
                registry=self._registry,
            )
            self._c_errors = Counter(
                "cwtransport_delivery_errors_total",
                "Non-ordering delivery errors",
                ["category"],
                registry=self._registry,
            )
            self._h_put_latency = Histogram(
                "cwtransport_put_seconds",
                "Latency of PutLogEvents calls",
                buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        return self._registry

    def record_delivered(self, events: int, *, latency_seconds: float | None = None) -> None:
        with self._lock:
            self._state.batches_delivered += 1
            self._state.events_delivered += events
        if not self._enabled:
            return
        if self._c_batches is not None:
            self._c_batches.labels(outcome="delivered").inc()
        if self._c_events is not None:
            self._c_events.inc(events)
        if latency_seconds is not None and self._h_put_latency is not None:
            self._h_put_latency.observe(latency_seconds)

    def record_failed(self, events: int) -> None:
        with self._lock:
            self._state.batches_failed += 1
            self._state.events_dropped += events
        if not self._enabled:
            return
        if self._c_batches is not None:
            self._c_batches.labels(outcome="failed").inc()
        if self._c_dropped is not None:
            self._c_dropped.inc(events)

    def record_events_dropped(self, count: int = 1) -> None:
        with self._lock:
            self._state.events_dropped += count
        if self._enabled and self._c_dropped is not None:
            self._c_dropped.inc(count)

    def record_ordering_conflict(self) -> None:
        with self._lock:
            self._state.ordering_conflicts += 1
        if self._enabled and self._c_conflicts is not None:
            self._c_conflicts.inc()

    def record_delivery_error(self, *, category: str | None = None) -> None:
        with self._lock:
            self._state.delivery_errors += 1
        if self._enabled and self._c_errors is not None:
            self._c_errors.labels(category=category or "unknown").inc()

    def snapshot(self) -> DeliveryMetrics:
        with self._lock:
            return replace(self._state)
