"""Metrics collection for the delivery engine."""

from .metrics import DeliveryMetrics, MetricsCollector

__all__ = ["DeliveryMetrics", "MetricsCollector"]
