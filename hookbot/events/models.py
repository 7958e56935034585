"""Dispatch event models for observability.

This module defines the data models for events emitted while ingesting
webhooks and running dispatch jobs:
- EventType: Enum of all event types
- DispatchEvent: Structured event with all required metadata

Events are emitted for monitoring, alerting, and debugging purposes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events emitted by the bot.

    Event Categories:
        STATE_TRANSITION: A delivery moved between receiver stages.
        REJECTED: A delivery was rejected (signature, payload, internal).
        ENQUEUED: A dispatch job was enqueued.
        DUPLICATE: A delivery id was seen again and not re-enqueued.
        JOB_COMPLETED: A worker finished a job.
        JOB_FAILED: A worker's job raised an error.
        TIMEOUT: A job exceeded its time limit.
    """

    STATE_TRANSITION = "state_transition"
    REJECTED = "rejected"
    ENQUEUED = "enqueued"
    DUPLICATE = "duplicate"
    JOB_COMPLETED = "job_completed"
    JOB_FAILED = "job_failed"
    TIMEOUT = "timeout"


class DispatchEvent(BaseModel):
    """Structured event emitted by the bot.

    Attributes:
        event_type: The category of event.
        delivery_id: GitHub delivery id the event relates to.
        repository: Repository path in format "{owner}/{repo}", empty when
            not yet known (e.g. rejected before classification).
        timestamp: When the event occurred (UTC timezone).
        details: Additional context specific to the event type.

    Details Field Conventions:
        STATE_TRANSITION: from_stage, to_stage, event
        REJECTED: reason, status_code
        ENQUEUED: template_id, queue_depth
        JOB_COMPLETED / JOB_FAILED: duration_seconds, error_type,
            error_message, queue_depth
        TIMEOUT: operation, timeout_seconds
    """

    event_type: EventType = Field(
        ...,
        description="The category of event being emitted",
    )

    delivery_id: str = Field(
        default="",
        description="GitHub delivery id from the X-GitHub-Delivery header",
    )

    repository: str = Field(
        default="",
        description='Repository path in format "{owner}/{repo}"',
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC timezone)",
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context specific to the event type",
    )

    def to_log_dict(self) -> Dict[str, Any]:
        """Convert event to a flat dictionary for structured logging.

        Example:
            >>> event = DispatchEvent(
            ...     event_type=EventType.REJECTED,
            ...     delivery_id="72d3162e",
            ...     details={"reason": "signature_invalid"}
            ... )
            >>> event.to_log_dict()["event_type"]
            'rejected'
        """
        return {
            "event_type": self.event_type.value,
            "delivery_id": self.delivery_id,
            "repository": self.repository,
            "timestamp": self.timestamp.isoformat(),
            **self.details,
        }
