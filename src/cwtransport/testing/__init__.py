"""
Testing utilities for code built on cwtransport.

- ``ManualClock``: deterministic clock; ``sleep()`` advances time instantly
  and records the requested duration.
- ``FakeLogsClient``: in-memory ``LogsClient`` with a real sequence token
  chain and scriptable failures.

Example:
    from cwtransport.testing import FakeLogsClient, ManualClock

    client = FakeLogsClient()
    clock = ManualClock()
    dispatcher = Dispatcher(client, clock=clock)
"""

from .clock import ManualClock
from .fakes import FakeLogsClient, PutCall

__all__ = ["FakeLogsClient", "ManualClock", "PutCall"]
