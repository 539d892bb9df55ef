"""
Public entrypoints for cwtransport.

Provides zero-config ``create_dispatcher()`` wired from environment settings.
"""

from __future__ import annotations

from ._version import __version__
from .client import Boto3LogsClient, LogsClient, LogStreamInfo, PutLogEventsResult
from .core.batch import Batch, Delivered, DeliveryResult, Failed
from .core.clock import Clock
from .core.dispatcher import Dispatcher, EventSink
from .core.events import LogEvent
from .core.settings import Settings, StreamOptions, TransportSettings
from .handlers import CloudWatchHandler
from .metrics.metrics import MetricsCollector

__all__ = [
    "Batch",
    "Boto3LogsClient",
    "CloudWatchHandler",
    "Clock",
    "Delivered",
    "DeliveryResult",
    "Dispatcher",
    "EventSink",
    "Failed",
    "LogEvent",
    "LogStreamInfo",
    "LogsClient",
    "PutLogEventsResult",
    "Settings",
    "StreamOptions",
    "TransportSettings",
    "VERSION",
    "__version__",
    "create_dispatcher",
]

VERSION = __version__


def create_dispatcher(
    settings: Settings | None = None,
    *,
    client: LogsClient | None = None,
    clock: Clock | None = None,
) -> Dispatcher:
    """Return a dispatcher wired to CloudWatch Logs.

    Settings default to the environment (``CWTRANSPORT_*``). Without an
    explicit ``client`` a ``Boto3LogsClient`` is built from ``settings.aws``;
    credentials follow the usual boto3 resolution chain.

    Example:
        dispatcher = create_dispatcher()
        sink = dispatcher.stream("web-application", "errors")
        logging.getLogger().addHandler(CloudWatchHandler(sink))
        dispatcher.process_all()  # inside a running event loop
        ...
        await dispatcher.drain(timeout=10.0)
    """
    from .core import diagnostics

    cfg = settings or Settings()
    diagnostics.configure(enabled=cfg.core.internal_logging_enabled)
    if client is None:
        client = Boto3LogsClient(
            region=cfg.aws.region,
            profile=cfg.aws.profile,
            endpoint_url=cfg.aws.endpoint_url,
        )
    metrics = MetricsCollector(enabled=cfg.core.enable_metrics)
    return Dispatcher(client, cfg.transport, clock=clock, metrics=metrics)
