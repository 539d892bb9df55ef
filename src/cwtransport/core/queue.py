"""
Per-destination delivery queue.

Batches for one destination are delivered strictly in FIFO order: the head
batch stays at the head until it has either been delivered or given up on,
including all of its retries. A background task runs one ``process()`` tick
per ``rate`` and sleeps for whatever is left of the interval afterwards.

Failure policy per batch:
- Ordering conflicts adopt the token reported by the service (or forget the
  cached token when none is reported) and retry up to ``retries`` times.
- Any other failure (provisioning, token lookup, transport) is retried up to
  ``transient_retries`` times; with the default of 0 the batch is dropped
  on the first failure.
- Retry ``n`` waits ``rate * n`` first (attempt 2 waits two intervals).

Each batch ends in exactly one ``Delivered`` or ``Failed`` result, which is
published to subscribers. Nothing raises out of ``process()`` except
cancellation.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING, Callable

from ..metrics.metrics import MetricsCollector
from .batch import Batch, Delivered, DeliveryResult, Failed, ResultListener
from .clock import DEFAULT_CLOCK, Clock
from .diagnostics import ComponentDiagnostics, DiagnosticsLogger
from .errors import OrderingConflictError, TransportError
from .sequence_token import SequenceTokenManager

if TYPE_CHECKING:
    from ..client import LogsClient, PutLogEventsResult
    from .destination import Destination


class DeliveryQueue:
    def __init__(
        self,
        client: LogsClient,
        destination: Destination,
        *,
        rate_seconds: float,
        retries: int,
        transient_retries: int = 0,
        token_manager: SequenceTokenManager | None = None,
        clock: Clock | None = None,
        metrics: MetricsCollector | None = None,
        diagnostics: DiagnosticsLogger | None = None,
    ) -> None:
        if rate_seconds <= 0:
            raise ValueError("rate_seconds must be > 0")
        if retries < 0 or transient_retries < 0:
            raise ValueError("retry counts must be >= 0")
        self._client = client
        self._destination = destination
        self._rate = rate_seconds
        self._retries = retries
        self._transient_retries = transient_retries
        self._diag = diagnostics or ComponentDiagnostics(
            "delivery-queue", destination=destination.label
        )
        self._tokens = token_manager or SequenceTokenManager(
            client, destination, diagnostics=self._diag
        )
        self._clock = clock or DEFAULT_CLOCK
        self._metrics = metrics
        self._pending: deque[Batch] = deque()
        self._listeners: list[ResultListener] = []
        self._tick_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._stopping = False
        self._restart_requested = False
        # True only while waiting on the clock, never during a network call
        self._cancellable = False

    @property
    def destination(self) -> Destination:
        return self._destination

    @property
    def token_manager(self) -> SequenceTokenManager:
        return self._tokens

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def enqueue(self, batch: Batch) -> None:
        self._pending.append(batch)

    def subscribe(self, listener: ResultListener) -> Callable[[], None]:
        """Register a result listener; returns a function that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def start(self) -> None:
        """Start the periodic loop on the running event loop.

        Called while a ``stop()`` is still waiting for the loop, the restart
        happens as soon as the old loop has exited.
        """
        if self.is_running:
            if self._stopping:
                self._restart_requested = True
            return
        self._stopping = False
        self._restart_requested = False
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(
            self._run(), name=f"cwtransport:{self._destination.label}"
        )

    async def stop(self) -> None:
        """Stop scheduling ticks.

        A tick that is mid-request finishes its round trip first; a loop that
        is only waiting (between ticks or in a backoff) is cancelled right
        away, leaving the head batch queued.
        """
        self._stopping = True
        self._restart_requested = False
        task = self._task
        if task is None:
            return
        if task is asyncio.current_task():
            return
        if self._cancellable:
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        if self._task is task:
            self._task = None

    async def _run(self) -> None:
        try:
            while not self._stopping:
                started = self._clock.monotonic()
                await self.process()
                if self._stopping:
                    break
                elapsed = self._clock.monotonic() - started
                await self._wait(max(0.0, self._rate - elapsed))
        except asyncio.CancelledError:
            return
        except Exception as exc:  # pragma: no cover
            self._diag.error(
                "delivery loop crashed",
                error_type=type(exc).__name__,
                error=str(exc),
                pending=len(self._pending),
            )
        finally:
            if self._restart_requested:
                asyncio.get_running_loop().call_soon(self._restart)

    def _restart(self) -> None:
        if self._restart_requested and not self.is_running:
            self.start()

    async def _wait(self, seconds: float) -> None:
        self._cancellable = True
        try:
            await self._clock.sleep(seconds)
        finally:
            self._cancellable = False

    async def process(self) -> DeliveryResult | None:
        """Deliver the head batch (with retries) and advance the queue.

        Returns the batch's result, or ``None`` when the queue was empty.
        Ticks never overlap for one destination.
        """
        async with self._tick_lock:
            if not self._pending:
                return None
            batch = self._pending[0]
            result = await self._deliver(batch)
            if result is None:
                return None
            self._pending.popleft()
        self._publish(result)
        return result

    async def _deliver(self, batch: Batch) -> DeliveryResult | None:
        """Run attempts until the batch has a final result.

        Returns ``None`` if the loop was stopped between attempts; the batch
        then stays at the head of the queue.
        """
        attempt = 0
        conflicts = 0
        failures = 0
        while True:
            attempt += 1
            try:
                response = await self._attempt(batch)
            except asyncio.CancelledError:
                raise
            except OrderingConflictError as exc:
                conflicts += 1
                self._adopt_expected_token(exc)
                if self._metrics is not None:
                    self._metrics.record_ordering_conflict()
                if conflicts > self._retries:
                    self._diag.warn(
                        "sequence token retries exhausted; batch dropped",
                        events=len(batch),
                        attempts=attempt,
                    )
                    return self._failed(batch, exc, attempt)
                self._diag.warn(
                    "sequence token conflict; retrying",
                    attempt=attempt,
                    expected_token=exc.expected_token,
                )
            except Exception as exc:
                failures += 1
                if self._metrics is not None:
                    self._metrics.record_delivery_error(category=_category(exc))
                if failures > self._transient_retries:
                    self._diag.error(
                        "delivery failed; batch dropped",
                        events=len(batch),
                        attempts=attempt,
                        error_type=type(exc).__name__,
                        error=str(exc),
                    )
                    return self._failed(batch, exc, attempt)
                self._diag.warn(
                    "delivery failed; retrying",
                    attempt=attempt,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
            else:
                return Delivered(batch=batch, response=response, attempts=attempt)
            if self._stopping and asyncio.current_task() is self._task:
                return None
            await self._wait(self._rate * (attempt + 1))

    async def _attempt(self, batch: Batch) -> PutLogEventsResult:
        if not self._destination.provisioned:
            await self._destination.ensure_provisioned()
        token = await self._tokens.get()
        started = self._clock.monotonic()
        response = await self._client.put_log_events(
            batch.group_name, batch.stream_name, batch.events, token
        )
        self._tokens.set(response.next_sequence_token)
        if response.rejected_info:
            self._diag.warn(
                "service rejected part of a batch",
                rejected=response.rejected_info,
                events=len(batch),
            )
        if self._metrics is not None:
            self._metrics.record_delivered(
                len(batch), latency_seconds=self._clock.monotonic() - started
            )
        return response

    def _adopt_expected_token(self, exc: OrderingConflictError) -> None:
        if exc.expected_token is not None:
            self._tokens.set(exc.expected_token)
        else:
            self._tokens.invalidate()

    def _failed(self, batch: Batch, exc: BaseException, attempts: int) -> Failed:
        if self._metrics is not None:
            self._metrics.record_failed(len(batch))
        return Failed(batch=batch, error=exc, attempts=attempts)

    def _publish(self, result: DeliveryResult) -> None:
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception as exc:
                self._diag.error(
                    "result listener failed",
                    error_type=type(exc).__name__,
                    error=str(exc),
                    events=len(result.batch),
                )


def _category(exc: BaseException) -> str:
    if isinstance(exc, TransportError):
        return exc.context.category.value
    return "unknown"
