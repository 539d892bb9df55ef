"""
Batches and delivery results.

A ``Batch`` is closed by the accumulator and never changes afterwards. Each
batch ends in exactly one ``DeliveryResult``: ``Delivered`` or ``Failed``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Union

from .destination import DestinationKey
from .events import LogEvent

if TYPE_CHECKING:
    from ..client import PutLogEventsResult


@dataclass(frozen=True)
class Batch:
    destination: DestinationKey
    events: tuple[LogEvent, ...]
    size_bytes: int
    sequence: int = 0

    def __len__(self) -> int:
        return len(self.events)

    @property
    def group_name(self) -> str:
        return self.destination.group_name

    @property
    def stream_name(self) -> str:
        return self.destination.stream_name


@dataclass(frozen=True)
class Delivered:
    batch: Batch
    response: PutLogEventsResult
    attempts: int = 1

    ok = True


@dataclass(frozen=True)
class Failed:
    batch: Batch
    error: BaseException
    attempts: int = 1

    ok = False


DeliveryResult = Union[Delivered, Failed]
ResultListener = Callable[[DeliveryResult], None]

__all__ = [
    "Batch",
    "Delivered",
    "DeliveryResult",
    "Failed",
    "ResultListener",
]
