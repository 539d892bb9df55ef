"""
Bridge from the stdlib ``logging`` module to a dispatcher stream.

``CloudWatchHandler`` renders each ``LogRecord`` as a compact JSON message
and hands it to an ``EventSink``. Records at or above ``printed_level`` are
treated as printed; anything below is only shipped when the dispatcher
transports hidden logs.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import orjson

from .core.events import LogEvent

# Attributes every LogRecord carries; anything else came from ``extra=``
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


def record_to_event(record: logging.LogRecord) -> LogEvent:
    payload: dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    extras = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
    if extras:
        payload["metadata"] = extras
    if record.exc_info and record.exc_info[0] is not None:
        payload["error.type"] = record.exc_info[0].__name__
        payload["error.message"] = str(record.exc_info[1])
    message = orjson.dumps(payload, default=str).decode("utf-8")
    return LogEvent(timestamp_millis=int(record.created * 1000), message=message)


class CloudWatchHandler(logging.Handler):
    def __init__(
        self,
        sink: Callable[[LogEvent, bool], None],
        *,
        level: int = logging.NOTSET,
        printed_level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level=level)
        self._sink = sink
        self._printed_level = printed_level

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = record_to_event(record)
            self._sink(event, record.levelno >= self._printed_level)
        except Exception:
            self.handleError(record)
