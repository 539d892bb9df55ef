"""
Log event model shipped to CloudWatch Logs.

A ``LogEvent`` is what the log-source integration hands to a stream sink:
a millisecond timestamp and an already-rendered message.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class LogEvent:
    """Immutable input log event."""

    timestamp_millis: int
    message: str

    def __post_init__(self) -> None:
        if not isinstance(self.timestamp_millis, int) or isinstance(
            self.timestamp_millis, bool
        ):
            raise ValueError("timestamp_millis must be an integer")
        if not isinstance(self.message, str):
            raise ValueError("message must be a string")

    @classmethod
    def now(cls, message: str) -> LogEvent:
        return cls(timestamp_millis=int(time.time() * 1000), message=message)

    def to_wire(self) -> dict[str, Any]:
        """Shape expected by ``PutLogEvents`` (``InputLogEvent``)."""
        return {"timestamp": self.timestamp_millis, "message": self.message}

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> LogEvent:
        return cls(timestamp_millis=int(data["timestamp"]), message=str(data["message"]))
