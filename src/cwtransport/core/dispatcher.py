"""
Dispatcher: the entry point that fans log events out to destinations.

``stream()`` returns an ``EventSink`` for one (group, stream) pair. The first
call for a pair creates its destination, accumulator and delivery queue;
later calls reuse them, so every sink for a pair feeds one ordered queue.
Destinations live as long as the dispatcher.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable

from ..metrics.metrics import MetricsCollector
from .accumulator import BatchAccumulator
from .batch import Batch, Delivered, DeliveryResult, ResultListener
from .clock import DEFAULT_CLOCK, Clock
from .destination import Destination, DestinationKey
from .diagnostics import ComponentDiagnostics, DiagnosticsLogger
from .events import LogEvent
from .queue import DeliveryQueue
from .settings import StreamOptions, TransportSettings

if TYPE_CHECKING:
    from ..client import LogsClient


@dataclass
class _Route:
    destination: Destination
    accumulator: BatchAccumulator
    queue: DeliveryQueue
    options: StreamOptions


class EventSink:
    """Callable handed to the log source for one destination.

    ``sink(event, printed)`` accepts an event when the host actually emitted
    it, or when hidden logs are transported. It never raises.
    """

    def __init__(self, dispatcher: Dispatcher, key: DestinationKey) -> None:
        self._dispatcher = dispatcher
        self.key = key

    def __call__(self, event: LogEvent, printed: bool) -> None:
        self._dispatcher._ingest(self.key, event, printed)

    def __repr__(self) -> str:
        return f"EventSink({self.key.label!r})"


class Dispatcher:
    def __init__(
        self,
        client: LogsClient,
        settings: TransportSettings | None = None,
        *,
        clock: Clock | None = None,
        metrics: MetricsCollector | None = None,
        diagnostics: DiagnosticsLogger | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or TransportSettings()
        self._clock = clock or DEFAULT_CLOCK
        self._metrics = metrics
        self._routes: dict[DestinationKey, _Route] = {}
        self._registry_lock = threading.Lock()
        self._listeners: list[ResultListener] = []
        self._running = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._diag = diagnostics or ComponentDiagnostics("dispatcher")

    @property
    def settings(self) -> TransportSettings:
        return self._settings

    @property
    def metrics(self) -> MetricsCollector | None:
        return self._metrics

    @property
    def is_running(self) -> bool:
        return self._running

    def destinations(self) -> list[Destination]:
        with self._registry_lock:
            return [route.destination for route in self._routes.values()]

    def queue_for(self, group_name: str, stream_name: str) -> DeliveryQueue | None:
        route = self._routes.get(DestinationKey(group_name, stream_name))
        return route.queue if route is not None else None

    def stream(
        self,
        group_name: str,
        stream_name: str,
        options: StreamOptions | dict | None = None,
    ) -> EventSink:
        """Return the event sink for ``(group_name, stream_name)``.

        Options only take effect on the first call for a pair.
        """
        key = DestinationKey(group_name, stream_name)
        if isinstance(options, dict):
            options = StreamOptions(**options)
        self._route(key, options or StreamOptions())
        return EventSink(self, key)

    def subscribe(self, listener: ResultListener) -> Callable[[], None]:
        """Receive every delivery result from every destination."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def process_all(self) -> None:
        """Start every delivery queue; queues created later start too."""
        self._loop = asyncio.get_running_loop()
        self._running = True
        for route in self._snapshot():
            route.queue.start()

    async def stop_all(self) -> None:
        self._running = False
        await asyncio.gather(*(route.queue.stop() for route in self._snapshot()))

    def flush(self) -> int:
        """Close partial batches into their queues; returns how many."""
        return sum(
            1 for route in self._snapshot() if route.accumulator.flush() is not None
        )

    async def drain(self, timeout: float | None = None) -> None:
        """Flush, stop the loops, then deliver everything still queued.

        On timeout the in-flight put is cancelled from asyncio's side only;
        a boto3 call running in its worker thread still completes. The
        service may then have accepted a batch that stays at the head of the
        queue with a stale cached token, so a later delivery re-sends it
        (at-least-once).
        """
        self.flush()
        await self.stop_all()

        async def _drain_queue(queue: DeliveryQueue) -> None:
            while queue.pending:
                await queue.process()

        drains = asyncio.gather(
            *(_drain_queue(route.queue) for route in self._snapshot())
        )
        try:
            await asyncio.wait_for(drains, timeout=timeout)
        except asyncio.TimeoutError:
            self._diag.warn(
                "drain timed out; batches left undelivered",
                pending=sum(r.queue.pending for r in self._snapshot()),
            )

    def load_batches(self, batches: Iterable[Batch]) -> None:
        """Queue pre-built batches behind anything already pending.

        Batches for unknown destinations get a route with default options.
        """
        for batch in batches:
            route = self._route(batch.destination, StreamOptions())
            route.queue.enqueue(batch)

    def _snapshot(self) -> list[_Route]:
        with self._registry_lock:
            return list(self._routes.values())

    def _route(self, key: DestinationKey, options: StreamOptions) -> _Route:
        with self._registry_lock:
            route = self._routes.get(key)
            if route is None:
                route = self._create_route(key, options)
                self._routes[key] = route
                created = True
            else:
                created = False
        if created and self._running:
            self._start_late(route.queue)
        return route

    def _create_route(self, key: DestinationKey, options: StreamOptions) -> _Route:
        cfg = self._settings
        diag = ComponentDiagnostics("delivery-queue", destination=key.label)
        destination = Destination(
            self._client,
            key.group_name,
            key.stream_name,
            provision_group=_pick(options.create_log_group, cfg.create_log_group),
            provision_stream=_pick(options.create_log_stream, cfg.create_log_stream),
            tags=options.group_tags,
        )
        queue = DeliveryQueue(
            self._client,
            destination,
            rate_seconds=cfg.rate_seconds,
            retries=cfg.retries,
            transient_retries=cfg.transient_retries,
            clock=self._clock,
            metrics=self._metrics,
            diagnostics=diag,
        )
        accumulator = BatchAccumulator(
            key,
            batch_size=cfg.batch_size,
            max_batch_events=cfg.max_batch_events,
            on_batch=queue.enqueue,
            on_drop=self._record_drop,
        )
        queue.subscribe(self._publish)
        if options.on_success is not None or options.on_failure is not None:
            queue.subscribe(_callback_listener(options))
        return _Route(destination, accumulator, queue, options)

    def _start_late(self, queue: DeliveryQueue) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            queue.start()
        else:
            loop.call_soon_threadsafe(queue.start)

    def _ingest(self, key: DestinationKey, event: LogEvent, printed: bool) -> None:
        if not (printed or self._settings.transport_hidden_logs):
            return
        route = self._routes.get(key)
        if route is None:
            return
        try:
            route.accumulator.add_event(event)
        except Exception as exc:
            self._diag.error(
                "failed to accept event",
                destination=key.label,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            self._record_drop(event)

    def _record_drop(self, _event: LogEvent) -> None:
        if self._metrics is not None:
            self._metrics.record_events_dropped(1)

    def _publish(self, result: DeliveryResult) -> None:
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception as exc:
                self._diag.error(
                    "result listener failed",
                    destination=result.batch.destination.label,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )


def _pick(override: bool | None, default: bool) -> bool:
    return default if override is None else override


def _callback_listener(options: StreamOptions) -> ResultListener:
    """Adapt per-stream success/failure callbacks to a result listener."""

    def _listener(result: DeliveryResult) -> None:
        if isinstance(result, Delivered):
            if options.on_success is not None:
                options.on_success(result.batch, result.response)
        elif options.on_failure is not None:
            options.on_failure(result.batch, result.error)

    return _listener
