"""Clock abstraction for pacing and backoff.

Delivery queues measure how long a tick took and sleep for the remainder of
the configured rate; retries sleep for an increasing backoff. Both go
through a ``Clock`` so tests can drive time deterministically with
``cwtransport.testing.ManualClock`` instead of real timers.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    def monotonic(self) -> float:
        """Return monotonic time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""
        ...


class SystemClock:
    """Production clock backed by ``time.monotonic`` and ``asyncio.sleep``."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


DEFAULT_CLOCK: Clock = SystemClock()
