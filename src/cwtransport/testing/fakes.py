"""In-memory CloudWatch Logs double."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from ..client import LogStreamInfo, PutLogEventsResult
from ..core.errors import (
    InvalidSequenceTokenError,
    ResourceAlreadyExistsError,
    TransientDeliveryError,
)
from ..core.events import LogEvent
from .clock import ManualClock


@dataclass(frozen=True)
class PutCall:
    group_name: str
    stream_name: str
    events: tuple[LogEvent, ...]
    sequence_token: str | None


@dataclass
class _StreamState:
    token: str | None = None
    events: list[LogEvent] = field(default_factory=list)
    puts: int = 0


class FakeLogsClient:
    """``LogsClient`` that keeps groups and streams in memory.

    Every call yields to the event loop once, like a network round trip.
    With ``strict_tokens`` (the default) a put whose token does not match
    the stream's current token fails with ``InvalidSequenceTokenError``
    carrying the expected token, as the service does. Failures can be
    scripted per operation with ``fail_next()``.
    """

    def __init__(
        self,
        *,
        strict_tokens: bool = True,
        clock: ManualClock | None = None,
        put_latency: float = 0.0,
    ) -> None:
        self.strict_tokens = strict_tokens
        self._clock = clock
        self._put_latency = put_latency
        self.groups: dict[str, dict[str, _StreamState]] = {}
        self.group_tags: dict[str, dict[str, str] | None] = {}
        self.calls: list[tuple[str, str, str | None]] = []
        self.puts: list[PutCall] = []
        self._failures: dict[str, deque[BaseException]] = defaultdict(deque)

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def seed_stream(
        self, group_name: str, stream_name: str, token: str | None = None
    ) -> None:
        """Create a group/stream directly, optionally with a current token."""
        self.groups.setdefault(group_name, {})
        self.groups[group_name][stream_name] = _StreamState(token=token)

    def fail_next(self, operation: str, *errors: BaseException) -> None:
        """Make the next calls to ``operation`` raise ``errors`` in order."""
        self._failures[operation].extend(errors)

    def events_for(self, group_name: str, stream_name: str) -> list[LogEvent]:
        return list(self.groups[group_name][stream_name].events)

    def token_for(self, group_name: str, stream_name: str) -> str | None:
        return self.groups[group_name][stream_name].token

    def count(self, operation: str) -> int:
        return sum(1 for op, _, _ in self.calls if op == operation)

    # ------------------------------------------------------------------
    # LogsClient
    # ------------------------------------------------------------------

    async def _enter(self, operation: str, group: str, stream: str | None) -> None:
        self.calls.append((operation, group, stream))
        await asyncio.sleep(0)
        pending = self._failures.get(operation)
        if pending:
            raise pending.popleft()

    async def create_log_group(
        self, group_name: str, tags: Mapping[str, str] | None = None
    ) -> None:
        await self._enter("create_log_group", group_name, None)
        if group_name in self.groups:
            raise ResourceAlreadyExistsError(
                "The specified log group already exists", group_name=group_name
            )
        self.groups[group_name] = {}
        self.group_tags[group_name] = dict(tags) if tags else None

    async def create_log_stream(self, group_name: str, stream_name: str) -> None:
        await self._enter("create_log_stream", group_name, stream_name)
        streams = self._group(group_name)
        if stream_name in streams:
            raise ResourceAlreadyExistsError(
                "The specified log stream already exists",
                group_name=group_name,
                stream_name=stream_name,
            )
        streams[stream_name] = _StreamState()

    async def describe_log_streams(
        self, group_name: str, stream_name_prefix: str
    ) -> list[LogStreamInfo]:
        await self._enter("describe_log_streams", group_name, stream_name_prefix)
        streams = self._group(group_name)
        return [
            LogStreamInfo(name=name, upload_sequence_token=state.token)
            for name, state in sorted(streams.items())
            if name.startswith(stream_name_prefix)
        ]

    async def put_log_events(
        self,
        group_name: str,
        stream_name: str,
        events: Sequence[LogEvent],
        sequence_token: str | None = None,
    ) -> PutLogEventsResult:
        self.puts.append(
            PutCall(group_name, stream_name, tuple(events), sequence_token)
        )
        await self._enter("put_log_events", group_name, stream_name)
        if self._clock is not None and self._put_latency:
            self._clock.advance(self._put_latency)
        state = self._group(group_name).get(stream_name)
        if state is None:
            raise TransientDeliveryError(
                "The specified log stream does not exist.",
                group_name=group_name,
                stream_name=stream_name,
                code="ResourceNotFoundException",
            )
        if self.strict_tokens and sequence_token != state.token:
            raise InvalidSequenceTokenError(
                "The given sequenceToken is invalid.",
                expected_token=state.token,
                group_name=group_name,
                stream_name=stream_name,
            )
        state.events.extend(events)
        state.puts += 1
        state.token = f"{stream_name}-{state.puts:04d}"
        return PutLogEventsResult(next_sequence_token=state.token)

    def _group(self, group_name: str) -> dict[str, _StreamState]:
        streams = self.groups.get(group_name)
        if streams is None:
            raise TransientDeliveryError(
                "The specified log group does not exist.",
                group_name=group_name,
                code="ResourceNotFoundException",
            )
        return streams
