"""
Core delivery engine: destinations, accumulation, queues and dispatch.
"""

from .accumulator import BatchAccumulator
from .batch import Batch, Delivered, DeliveryResult, Failed, ResultListener
from .clock import DEFAULT_CLOCK, Clock, SystemClock
from .destination import Destination, DestinationKey
from .dispatcher import Dispatcher, EventSink
from .errors import (
    DataAlreadyAcceptedError,
    ErrorCategory,
    ErrorSeverity,
    InvalidSequenceTokenError,
    OrderingConflictError,
    ProvisionError,
    ResourceAlreadyExistsError,
    TokenLookupFailure,
    TransientDeliveryError,
    TransportError,
)
from .events import LogEvent
from .queue import DeliveryQueue
from .sequence_token import SequenceTokenManager
from .settings import Settings, StreamOptions, TransportSettings

__all__ = [
    "Batch",
    "BatchAccumulator",
    "Clock",
    "DEFAULT_CLOCK",
    "DataAlreadyAcceptedError",
    "Delivered",
    "DeliveryQueue",
    "DeliveryResult",
    "Destination",
    "DestinationKey",
    "Dispatcher",
    "ErrorCategory",
    "ErrorSeverity",
    "EventSink",
    "Failed",
    "InvalidSequenceTokenError",
    "LogEvent",
    "OrderingConflictError",
    "ProvisionError",
    "ResourceAlreadyExistsError",
    "ResultListener",
    "SequenceTokenManager",
    "Settings",
    "StreamOptions",
    "SystemClock",
    "TokenLookupFailure",
    "TransientDeliveryError",
    "TransportError",
    "TransportSettings",
]
