"""Event emitter implementations for webhook observability.

The receiver and the dispatch workers emit events without knowing where they
go. Emitters route them to concrete sinks:

- LoggingEventEmitter: Emits events as structured log entries
- CompositeEventEmitter: Emits to multiple sinks simultaneously
- NullEventEmitter: Discards events

The metrics sink lives in metrics.py.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable, List, Optional, Union

from hookbot.events.models import DispatchEvent, EventType

logger = logging.getLogger(__name__)


class EventSinkType(str, Enum):
    """Types of event sinks.

    Attributes:
        LOGGING: Emit events as structured log entries.
        METRICS: Emit events as Prometheus metrics.
    """

    LOGGING = "logging"
    METRICS = "metrics"


class EventEmitter(ABC):
    """Abstract base class for event emitters.

    Implementations are called from the request path, so emit() must not
    block and should log its own failures rather than raise.
    """

    @abstractmethod
    async def emit(self, event: DispatchEvent) -> None:
        """Emit an event to the sink."""

    async def close(self) -> None:
        """Release resources held by the emitter."""


class LoggingEventEmitter(EventEmitter):
    """Event emitter that writes events as structured log entries.

    Log levels per event type:

    - STATE_TRANSITION: DEBUG
    - ENQUEUED, DUPLICATE, JOB_COMPLETED: INFO
    - REJECTED, TIMEOUT: WARNING
    - JOB_FAILED: ERROR

    Example:
        >>> emitter = LoggingEventEmitter()
        >>> await emitter.emit(DispatchEvent(
        ...     event_type=EventType.ENQUEUED,
        ...     delivery_id="72d3162e",
        ...     repository="org/repo",
        ... ))
        # Logs: INFO - Webhook event: enqueued for delivery 72d3162e
    """

    def __init__(self, logger_name: Optional[str] = None):
        self._logger = logging.getLogger(logger_name) if logger_name else logger
        self._log_level_map = {
            EventType.STATE_TRANSITION: logging.DEBUG,
            EventType.ENQUEUED: logging.INFO,
            EventType.DUPLICATE: logging.INFO,
            EventType.JOB_COMPLETED: logging.INFO,
            EventType.REJECTED: logging.WARNING,
            EventType.TIMEOUT: logging.WARNING,
            EventType.JOB_FAILED: logging.ERROR,
        }

    async def emit(self, event: DispatchEvent) -> None:
        log_level = self._log_level_map.get(event.event_type, logging.INFO)
        self._logger.log(
            log_level,
            "Webhook event: %s for delivery %s",
            event.event_type.value,
            event.delivery_id,
            extra=event.to_log_dict(),
        )


class CompositeEventEmitter(EventEmitter):
    """Event emitter that delegates to multiple child emitters.

    A failing child is logged and skipped; the remaining children still
    receive the event.
    """

    def __init__(self, emitters: Optional[List[EventEmitter]] = None):
        self._emitters: List[EventEmitter] = list(emitters or [])

    def add_emitter(self, emitter: EventEmitter) -> None:
        self._emitters.append(emitter)

    @property
    def emitters(self) -> List[EventEmitter]:
        return list(self._emitters)

    async def emit(self, event: DispatchEvent) -> None:
        for emitter in self._emitters:
            try:
                await emitter.emit(event)
            except Exception as e:
                logger.error(
                    "Failed to emit event to %s: %s",
                    type(emitter).__name__,
                    e,
                    extra={
                        "emitter_type": type(emitter).__name__,
                        "event_type": event.event_type.value,
                        "delivery_id": event.delivery_id,
                    },
                )

    async def close(self) -> None:
        for emitter in self._emitters:
            try:
                await emitter.close()
            except Exception as e:
                logger.error(
                    "Failed to close emitter %s: %s",
                    type(emitter).__name__,
                    e,
                )


class NullEventEmitter(EventEmitter):
    """Event emitter that discards all events."""

    async def emit(self, event: DispatchEvent) -> None:
        pass


def create_event_emitter(
    sink_types: Optional[Iterable[Union[EventSinkType, str]]] = None,
    logger_name: Optional[str] = None,
    registry=None,
) -> EventEmitter:
    """Create an emitter for the configured sinks.

    Args:
        sink_types: Sinks to enable. None or empty gives a
            LoggingEventEmitter.
        logger_name: Optional logger name for the LoggingEventEmitter.
        registry: Optional Prometheus registry for the metrics sink.

    Returns:
        A single emitter, or a CompositeEventEmitter when several sinks are
        enabled.

    Example:
        >>> emitter = create_event_emitter(["logging", "metrics"])
        >>> isinstance(emitter, CompositeEventEmitter)
        True
    """
    emitters: List[EventEmitter] = []

    for sink_type in sink_types or []:
        try:
            sink = EventSinkType(sink_type)
        except ValueError:
            logger.warning("Unknown event sink type: %s, skipping", sink_type)
            continue

        if sink == EventSinkType.LOGGING:
            emitters.append(LoggingEventEmitter(logger_name=logger_name))
        elif sink == EventSinkType.METRICS:
            # Imported here since metrics.py imports from this module
            from hookbot.events.metrics import MetricsEventEmitter

            emitters.append(MetricsEventEmitter(registry=registry))

    if not emitters:
        return LoggingEventEmitter(logger_name=logger_name)

    if len(emitters) == 1:
        return emitters[0]

    return CompositeEventEmitter(emitters)
