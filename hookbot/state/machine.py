"""Per-delivery receiver state machine.

One DeliveryStateMachine lives for the duration of one webhook request. It
enforces VALID_TRANSITIONS and keeps the transition history, which the
receiver turns into STATE_TRANSITION events.
"""

import logging
from typing import Any, List, Optional, Union

from hookbot.state.models import (
    ReceiverStage,
    RejectionReason,
    StageTransition,
    is_terminal_stage,
    is_valid_transition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """Raised when a stage change violates the valid transitions map.

    Attributes:
        from_stage: The current stage.
        to_stage: The attempted target stage.
        message: Human-readable error message.
    """

    def __init__(
        self,
        from_stage: ReceiverStage,
        to_stage: ReceiverStage,
        message: Optional[str] = None,
    ):
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.message = message or (
            f"Invalid transition from {from_stage.value} to {to_stage.value}"
        )
        super().__init__(self.message)


class DeliveryStateMachine:
    """Tracks one delivery through the receiver stages.

    Example:
        >>> machine = DeliveryStateMachine("72d3162e")
        >>> machine.transition(ReceiverStage.VERIFIED)
        >>> machine.reject(RejectionReason.MALFORMED_PAYLOAD)
        >>> machine.stage
        <ReceiverStage.REJECTED: 'rejected'>
    """

    def __init__(self, delivery_id: Optional[str] = None):
        self.delivery_id = delivery_id or ""
        self._stage = ReceiverStage.RECEIVED
        self._history: List[StageTransition] = []
        self._rejection_reason: Optional[RejectionReason] = None

    @property
    def stage(self) -> ReceiverStage:
        return self._stage

    @property
    def history(self) -> List[StageTransition]:
        return list(self._history)

    @property
    def rejection_reason(self) -> Optional[RejectionReason]:
        return self._rejection_reason

    @property
    def is_finished(self) -> bool:
        return is_terminal_stage(self._stage)

    def transition(self, to_stage: ReceiverStage, **details: Any) -> StageTransition:
        """Move to ``to_stage`` and record the transition.

        Raises:
            InvalidTransitionError: If the move is not allowed from the
                current stage.
        """
        if not is_valid_transition(self._stage, to_stage):
            raise InvalidTransitionError(self._stage, to_stage)

        record = StageTransition(
            from_stage=self._stage,
            to_stage=to_stage,
            details=details,
        )
        self._history.append(record)
        self._stage = to_stage

        logger.debug(
            "Delivery %s: %s -> %s",
            self.delivery_id,
            record.from_stage.value,
            record.to_stage.value,
        )
        return record

    def reject(
        self, reason: Union[RejectionReason, str], **details: Any
    ) -> StageTransition:
        """Move to REJECTED, recording why."""
        reason = RejectionReason(reason)
        record = self.transition(
            ReceiverStage.REJECTED, reason=reason.value, **details
        )
        self._rejection_reason = reason
        return record

    def acknowledge(self, **details: Any) -> StageTransition:
        """Move to ACKNOWLEDGED."""
        return self.transition(ReceiverStage.ACKNOWLEDGED, **details)
