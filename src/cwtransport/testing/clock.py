"""Controllable clock for deterministic tests."""

from __future__ import annotations

import asyncio


class ManualClock:
    """Clock whose time only moves when told to.

    ``sleep()`` records the duration, advances time by it and yields once to
    the event loop, so paced loops make progress without real waiting.

    Example:
        clock = ManualClock()
        queue = DeliveryQueue(client, destination, rate_seconds=1.0,
                              retries=3, clock=clock)
        await queue.process()
        assert clock.sleeps == [2.0]  # one backoff after a conflict
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._current += max(0.0, seconds)
        await asyncio.sleep(0)
