"""
Event serialization used for batch byte accounting.

CloudWatch Logs counts its batch byte limit per event, so each event is
serialized on its own (compact JSON via orjson, no whitespace, UTF-8) rather
than the batch as one document. The accumulator sums these sizes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import orjson

from .errors import (
    ErrorCategory,
    ErrorSeverity,
    TransportError,
    create_error_context,
)
from .events import LogEvent


@dataclass
class SerializedView:
    """Serialized bytes of one event."""

    data: bytes

    def __len__(self) -> int:
        return len(self.data)


def serialize_event(event: LogEvent) -> SerializedView:
    """Serialize a single event to compact JSON bytes."""
    try:
        data = orjson.dumps(event.to_wire())
    except TypeError as e:
        context = create_error_context(
            ErrorCategory.SERIALIZATION,
            ErrorSeverity.HIGH,
        )
        raise TransportError(
            "Event serialization failed",
            error_context=context,
            cause=e,
        ) from e
    return SerializedView(data=data)


def event_size_bytes(event: LogEvent) -> int:
    return len(serialize_event(event))


def batch_size_bytes(events: Iterable[LogEvent]) -> int:
    """Total size of a batch as the service accounts for it."""
    return sum(event_size_bytes(e) for e in events)
