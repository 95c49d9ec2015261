"""Metrics collection service using Prometheus.

This service tracks key metrics for the workflow core:
- Instance lifecycle operations
- Approval decisions and request outcomes
- Definition service latency and failures
- Optimistic concurrency conflicts
- HTTP request metrics
"""

import logging
import time
from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CollectorRegistry,
    CONTENT_TYPE_LATEST,
)

logger = logging.getLogger(__name__)


class MetricsService:
    """Service for collecting and exposing Prometheus metrics.

    Usage:
        metrics = get_metrics()
        metrics.instance_operations.labels(operation="transition", outcome="success").inc()
        with metrics.track_definition_fetch():
            ...
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics service.

        Args:
            registry: Optional Prometheus registry (default: global registry)
        """
        self.registry = registry
        kwargs = {"registry": registry} if registry is not None else {}

        # Instance Metrics
        self.instance_operations = Counter(
            "workflow_instance_operations_total",
            "Total number of workflow instance operations",
            ["operation", "outcome"],
            **kwargs
        )

        self.instances_finished = Counter(
            "workflow_instances_finished_total",
            "Total number of instances reaching a terminal status",
            ["status"],
            **kwargs
        )

        # Approval Metrics
        self.approval_decisions = Counter(
            "approval_decisions_total",
            "Total number of approval decisions processed",
            ["decision", "outcome"],
            **kwargs
        )

        self.approval_outcomes = Counter(
            "approval_requests_resolved_total",
            "Total number of approval requests leaving pending",
            ["status"],
            **kwargs
        )

        # Definition Service Metrics
        self.definition_fetch_time = Histogram(
            "definition_fetch_seconds",
            "Definition service request time in seconds",
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
            **kwargs
        )

        self.definition_fetch_failures = Counter(
            "definition_fetch_failures_total",
            "Total definition fetches that ended unavailable",
            ["reason"],
            **kwargs
        )

        # Concurrency Metrics
        self.concurrency_conflicts = Counter(
            "concurrency_conflicts_total",
            "Total version-check conflicts detected on write",
            ["entity"],
            **kwargs
        )

        # System Health Metrics
        self.http_requests = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            **kwargs
        )

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            **kwargs
        )

        logger.info("MetricsService initialized with Prometheus metrics")

    def track_definition_fetch(self):
        """Context manager for timing a definition service call.

        Usage:
            with metrics.track_definition_fetch():
                response = client.get(...)
        """
        return _ExecutionTracker(self.definition_fetch_time)

    def export_metrics(self) -> bytes:
        """Export metrics in Prometheus format.

        Returns:
            Metrics in Prometheus text format
        """
        if self.registry is None:
            return generate_latest()
        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        """Get content type for metrics endpoint.

        Returns:
            Content type string
        """
        return CONTENT_TYPE_LATEST


class _ExecutionTracker:
    """Context manager for tracking execution time."""

    def __init__(self, timer):
        self.timer = timer
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.observe(time.time() - self.start_time)
        return False  # Don't suppress exceptions


# Global metrics instance
_metrics_instance: Optional[MetricsService] = None


def get_metrics() -> MetricsService:
    """Get global metrics service instance.

    Returns:
        MetricsService singleton
    """
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = MetricsService()
    return _metrics_instance
