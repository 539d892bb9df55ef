"""
Structured internal diagnostics.

The transport must never raise into the application that is logging, so its
own problems are reported here instead: one JSON line per diagnostic written
to stderr (or to a writer installed for tests).

- ``debug`` and ``warn`` are emitted only when
  ``core.internal_logging_enabled`` is set; the setting is read once and
  cached in ``_internal_logging_enabled``.
- ``error`` is always emitted.
- Passing ``_rate_limit_key`` collapses bursts of the same diagnostic to at
  most one line per ``_RATE_LIMIT_WINDOW_SECONDS``.

Components receive a ``DiagnosticsLogger`` at construction time;
``ComponentDiagnostics`` is the default implementation and forwards to the
module-level functions so they can be patched in tests.
"""

from __future__ import annotations

import sys
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

import orjson

DiagnosticWriter = Callable[[dict[str, Any]], None]

_RATE_LIMIT_WINDOW_SECONDS = 5.0

# Cached lookup of core.internal_logging_enabled; None means "not read yet"
_internal_logging_enabled: bool | None = None
_writer: DiagnosticWriter | None = None
_last_emitted: dict[str, float] = {}
_lock = threading.Lock()


def _default_writer(payload: dict[str, Any]) -> None:
    line = orjson.dumps(payload, default=str)
    sys.stderr.write(line.decode("utf-8") + "\n")
    sys.stderr.flush()


def set_writer_for_tests(writer: DiagnosticWriter | None) -> None:
    """Install a writer that receives each diagnostic payload as a dict."""
    global _writer
    _writer = writer


def configure(*, enabled: bool | None = None) -> None:
    """Override the cached enablement flag (``None`` re-reads settings)."""
    global _internal_logging_enabled
    _internal_logging_enabled = enabled


def is_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        try:
            from .settings import Settings

            _internal_logging_enabled = bool(Settings().core.internal_logging_enabled)
        except Exception:
            _internal_logging_enabled = False
    return _internal_logging_enabled


def _should_rate_limit(key: str | None) -> bool:
    if key is None:
        return False
    now = time.monotonic()
    with _lock:
        last = _last_emitted.get(key)
        if last is not None and now - last < _RATE_LIMIT_WINDOW_SECONDS:
            return True
        _last_emitted[key] = now
    return False


def _emit(level: str, component: str, message: str, fields: dict[str, Any]) -> None:
    if _should_rate_limit(fields.pop("_rate_limit_key", None)):
        return
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "component": component,
        "message": message,
    }
    payload.update(fields)
    writer = _writer or _default_writer
    try:
        writer(payload)
    except Exception:
        # Diagnostics must never break the caller
        pass


def debug(component: str, message: str, **fields: Any) -> None:
    if not is_enabled():
        return
    _emit("DEBUG", component, message, fields)


def warn(component: str, message: str, **fields: Any) -> None:
    if not is_enabled():
        return
    _emit("WARN", component, message, fields)


def error(component: str, message: str, **fields: Any) -> None:
    _emit("ERROR", component, message, fields)


class DiagnosticsLogger(Protocol):
    """Structured logger interface injected into transport components."""

    def debug(self, message: str, **fields: Any) -> None: ...

    def warn(self, message: str, **fields: Any) -> None: ...

    def error(self, message: str, **fields: Any) -> None: ...


class ComponentDiagnostics:
    """Diagnostics bound to a component name and fixed fields."""

    def __init__(self, component: str, **bound: Any) -> None:
        self._component = component
        self._bound = bound

    def bind(self, **fields: Any) -> ComponentDiagnostics:
        return ComponentDiagnostics(self._component, **{**self._bound, **fields})

    def debug(self, message: str, **fields: Any) -> None:
        debug(self._component, message, **{**self._bound, **fields})

    def warn(self, message: str, **fields: Any) -> None:
        warn(self._component, message, **{**self._bound, **fields})

    def error(self, message: str, **fields: Any) -> None:
        error(self._component, message, **{**self._bound, **fields})


__all__ = [
    "ComponentDiagnostics",
    "DiagnosticWriter",
    "DiagnosticsLogger",
    "configure",
    "debug",
    "error",
    "is_enabled",
    "set_writer_for_tests",
    "warn",
]
