"""
Byte-bounded batch accumulation for one destination.

Events are packed in arrival order. A batch is closed as soon as the next
event would bring its serialized size to ``batch_size`` or beyond; that event
then opens the next batch. Closed batches are handed to ``on_batch`` while
the lock is still held, so hand-off order is always close order. Sizes are
measured per event, the way the service accounts for them.
"""

from __future__ import annotations

import threading
from typing import Callable

from .batch import Batch
from .destination import DestinationKey
from .diagnostics import ComponentDiagnostics, DiagnosticsLogger
from .events import LogEvent
from .serialization import event_size_bytes


class BatchAccumulator:
    def __init__(
        self,
        destination: DestinationKey,
        *,
        batch_size: int,
        max_batch_events: int = 10_000,
        on_batch: Callable[[Batch], None] | None = None,
        on_drop: Callable[[LogEvent], None] | None = None,
        diagnostics: DiagnosticsLogger | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        if max_batch_events <= 0:
            raise ValueError("max_batch_events must be > 0")
        self._destination = destination
        self._batch_size = batch_size
        self._max_batch_events = max_batch_events
        self._on_batch = on_batch
        self._on_drop = on_drop
        self._diag = diagnostics or ComponentDiagnostics(
            "accumulator", destination=destination.label
        )
        self._lock = threading.Lock()
        self._events: list[LogEvent] = []
        self._running_size = 0
        self._next_sequence = 0

    @property
    def pending_events(self) -> int:
        with self._lock:
            return len(self._events)

    @property
    def pending_bytes(self) -> int:
        with self._lock:
            return self._running_size

    def add_event(self, event: LogEvent) -> Batch | None:
        """Add ``event``; return the batch it closed, if any."""
        size = event_size_bytes(event)
        if size >= self._batch_size:
            self._drop_oversized(event, size)
            return None
        with self._lock:
            fits = (
                self._running_size + size < self._batch_size
                and len(self._events) < self._max_batch_events
            )
            if fits:
                self._events.append(event)
                self._running_size += size
                return None
            closed = self._close_locked()
            self._events.append(event)
            self._running_size = size
            return closed

    def flush(self) -> Batch | None:
        """Close whatever is pending, even if the budget is not reached."""
        with self._lock:
            return self._close_locked()

    def _close_locked(self) -> Batch | None:
        if not self._events:
            return None
        batch = Batch(
            destination=self._destination,
            events=tuple(self._events),
            size_bytes=self._running_size,
            sequence=self._next_sequence,
        )
        self._next_sequence += 1
        self._events = []
        self._running_size = 0
        if self._on_batch is not None:
            self._on_batch(batch)
        return batch

    def _drop_oversized(self, event: LogEvent, size: int) -> None:
        self._diag.warn(
            "event exceeds batch size; dropped",
            event_bytes=size,
            batch_size=self._batch_size,
            _rate_limit_key=f"oversized:{self._destination.label}",
        )
        if self._on_drop is not None:
            try:
                self._on_drop(event)
            except Exception as exc:
                self._diag.error(
                    "drop callback failed",
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
