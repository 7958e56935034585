"""Prometheus metrics for webhook ingestion and dispatch.

Metrics are exposed at the ``/metrics`` endpoint in Prometheus format.

Metrics Defined:
- hookbot_webhooks_received_total: Deliveries that classified, by event
- hookbot_webhooks_rejected_total: Rejected deliveries, by reason
- hookbot_jobs_enqueued_total: Dispatch jobs enqueued, by event key
- hookbot_duplicate_deliveries_total: Redelivered ids not re-enqueued
- hookbot_jobs_finished_total: Finished jobs, by result
- hookbot_job_duration_seconds: Histogram of job processing time
- hookbot_queue_depth: Jobs waiting to be dequeued

MetricsEventEmitter updates these from the event stream, so the receiver and
workers never touch Prometheus directly.
"""

import logging
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from hookbot.events.emitter import EventEmitter
from hookbot.events.models import DispatchEvent, EventType

logger = logging.getLogger(__name__)


# Jobs are LLM calls: from about a second up to the default 30 minute timeout
DEFAULT_DURATION_BUCKETS = (
    1.0,
    5.0,
    10.0,
    30.0,
    60.0,
    120.0,
    300.0,
    600.0,
    1800.0,
    3600.0,
)

JOB_RESULTS = ("completed", "failed", "timeout")


class DispatchMetrics:
    """Container for the bot's Prometheus metrics.

    Args:
        registry: Prometheus registry. Defaults to the global REGISTRY; pass
            a fresh CollectorRegistry in tests.

    Example:
        >>> metrics = DispatchMetrics(CollectorRegistry())
        >>> metrics.record_rejected("signature_invalid")
        >>> metrics.record_job_finished("completed", duration_seconds=12.5)
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.webhooks_received_total = Counter(
            "hookbot_webhooks_received_total",
            "Total number of verified and classified webhook deliveries",
            labelnames=["event"],
            registry=self.registry,
        )

        self.webhooks_rejected_total = Counter(
            "hookbot_webhooks_rejected_total",
            "Total number of rejected webhook deliveries",
            labelnames=["reason"],
            registry=self.registry,
        )

        self.jobs_enqueued_total = Counter(
            "hookbot_jobs_enqueued_total",
            "Total number of dispatch jobs enqueued",
            labelnames=["event"],
            registry=self.registry,
        )

        self.duplicate_deliveries_total = Counter(
            "hookbot_duplicate_deliveries_total",
            "Total number of redelivered webhooks that were not re-enqueued",
            registry=self.registry,
        )

        self.jobs_finished_total = Counter(
            "hookbot_jobs_finished_total",
            "Total number of dispatch jobs finished, by result",
            labelnames=["result"],
            registry=self.registry,
        )

        self.job_duration_seconds = Histogram(
            "hookbot_job_duration_seconds",
            "Time spent processing dispatch jobs in seconds",
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

        self.queue_depth = Gauge(
            "hookbot_queue_depth",
            "Number of dispatch jobs waiting to be dequeued",
            registry=self.registry,
        )

        for result in JOB_RESULTS:
            self.jobs_finished_total.labels(result=result)

    def record_received(self, event: str) -> None:
        self.webhooks_received_total.labels(event=event).inc()

    def record_rejected(self, reason: str) -> None:
        self.webhooks_rejected_total.labels(reason=reason).inc()

    def record_enqueued(self, event: str) -> None:
        self.jobs_enqueued_total.labels(event=event).inc()

    def record_duplicate(self) -> None:
        self.duplicate_deliveries_total.inc()

    def record_job_finished(
        self,
        result: str,
        duration_seconds: Optional[float] = None,
    ) -> None:
        """Record a finished job and, when known, how long it took."""
        self.jobs_finished_total.labels(result=result).inc()
        if duration_seconds is not None:
            self.job_duration_seconds.observe(duration_seconds)

    def set_queue_depth(self, depth: int) -> None:
        self.queue_depth.set(max(0, depth))


# Metrics instance for the default registry
_default_metrics: Optional[DispatchMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> DispatchMetrics:
    """Get the metrics for the default registry, or new ones for a custom one.

    Metrics can only be registered once per registry, so the default
    registry's instance is created once and reused.
    """
    global _default_metrics

    if registry is not None:
        return DispatchMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = DispatchMetrics()

    return _default_metrics


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Generate Prometheus text output for the /metrics endpoint."""
    return generate_latest(registry or REGISTRY)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that updates Prometheus metrics.

    - STATE_TRANSITION to ``classified``: webhooks_received_total
    - REJECTED: webhooks_rejected_total
    - ENQUEUED: jobs_enqueued_total
    - DUPLICATE: duplicate_deliveries_total
    - JOB_COMPLETED / JOB_FAILED / TIMEOUT: jobs_finished_total and
      job_duration_seconds

    Any event carrying ``queue_depth`` in its details updates the queue
    depth gauge.
    """

    def __init__(
        self,
        metrics: Optional[DispatchMetrics] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        self._metrics = metrics if metrics is not None else get_metrics(registry)

    @property
    def metrics(self) -> DispatchMetrics:
        return self._metrics

    async def emit(self, event: DispatchEvent) -> None:
        try:
            self._update(event)
        except Exception as e:
            logger.error(
                "Failed to update metrics for event %s: %s",
                event.event_type.value,
                e,
                extra={
                    "event_type": event.event_type.value,
                    "delivery_id": event.delivery_id,
                },
            )

    def _update(self, event: DispatchEvent) -> None:
        details = event.details
        event_type = event.event_type

        if event_type == EventType.STATE_TRANSITION:
            if details.get("to_stage") == "classified":
                self._metrics.record_received(str(details.get("event", "unknown")))
        elif event_type == EventType.REJECTED:
            self._metrics.record_rejected(str(details.get("reason", "unknown")))
        elif event_type == EventType.ENQUEUED:
            self._metrics.record_enqueued(str(details.get("event", "unknown")))
        elif event_type == EventType.DUPLICATE:
            self._metrics.record_duplicate()
        elif event_type == EventType.JOB_COMPLETED:
            self._metrics.record_job_finished(
                "completed", details.get("duration_seconds")
            )
        elif event_type == EventType.JOB_FAILED:
            self._metrics.record_job_finished(
                "failed", details.get("duration_seconds")
            )
        elif event_type == EventType.TIMEOUT:
            self._metrics.record_job_finished("timeout")

        queue_depth = details.get("queue_depth")
        if isinstance(queue_depth, int):
            self._metrics.set_queue_depth(queue_depth)
