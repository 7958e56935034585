"""Receiver state machine models.

Every delivery moves through the receiver stages once:

    received → verified → classified → extracted → rendered → enqueued
    → acknowledged

with ``rejected`` reachable from every non-terminal stage. Deliveries that
legitimately produce no work leave the chain early for ``acknowledged``:

- classified → acknowledged: ``ping`` deliveries
- extracted → acknowledged: no actionable mention
- rendered → acknowledged: the delivery id was already enqueued

``acknowledged`` and ``rejected`` are terminal.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class ReceiverStage(str, Enum):
    """Stages a webhook delivery passes through inside the receiver."""

    RECEIVED = "received"
    VERIFIED = "verified"
    CLASSIFIED = "classified"
    EXTRACTED = "extracted"
    RENDERED = "rendered"
    ENQUEUED = "enqueued"
    ACKNOWLEDGED = "acknowledged"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    """Why a delivery was rejected.

    Values match ``WebhookError.reason`` on the corresponding exception.
    """

    SIGNATURE_INVALID = "signature_invalid"
    MALFORMED_PAYLOAD = "malformed_payload"
    UNSUPPORTED_EVENT = "unsupported_event"
    MISSING_CONTEXT = "missing_context"
    CLASSIFICATION_ERROR = "classification_error"
    INTERNAL_FAILURE = "internal_failure"


class StageTransition(BaseModel):
    """Record of one stage change of a delivery."""

    from_stage: ReceiverStage = Field(
        ...,
        description="The receiver stage before this transition",
    )

    to_stage: ReceiverStage = Field(
        ...,
        description="The receiver stage after this transition",
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the transition occurred (UTC timezone)",
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Optional metadata about the transition",
    )


VALID_TRANSITIONS: Dict[ReceiverStage, List[ReceiverStage]] = {
    ReceiverStage.RECEIVED: [
        ReceiverStage.VERIFIED,
        ReceiverStage.REJECTED,
    ],
    ReceiverStage.VERIFIED: [
        ReceiverStage.CLASSIFIED,
        ReceiverStage.REJECTED,
    ],
    # ping deliveries are acknowledged straight after classification
    ReceiverStage.CLASSIFIED: [
        ReceiverStage.EXTRACTED,
        ReceiverStage.ACKNOWLEDGED,
        ReceiverStage.REJECTED,
    ],
    # no actionable mention
    ReceiverStage.EXTRACTED: [
        ReceiverStage.RENDERED,
        ReceiverStage.ACKNOWLEDGED,
        ReceiverStage.REJECTED,
    ],
    # duplicate delivery id
    ReceiverStage.RENDERED: [
        ReceiverStage.ENQUEUED,
        ReceiverStage.ACKNOWLEDGED,
        ReceiverStage.REJECTED,
    ],
    ReceiverStage.ENQUEUED: [
        ReceiverStage.ACKNOWLEDGED,
        ReceiverStage.REJECTED,
    ],
    ReceiverStage.ACKNOWLEDGED: [],
    ReceiverStage.REJECTED: [],
}


def is_valid_transition(from_stage: ReceiverStage, to_stage: ReceiverStage) -> bool:
    """Check a stage change against VALID_TRANSITIONS.

    Example:
        >>> is_valid_transition(ReceiverStage.RECEIVED, ReceiverStage.VERIFIED)
        True
        >>> is_valid_transition(ReceiverStage.RECEIVED, ReceiverStage.ENQUEUED)
        False
    """
    return to_stage in VALID_TRANSITIONS.get(from_stage, [])


def is_terminal_stage(stage: ReceiverStage) -> bool:
    """Check if a stage has no outgoing transitions."""
    return len(VALID_TRANSITIONS.get(stage, [])) == 0
