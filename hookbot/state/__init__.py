"""Receiver state machine.

- ReceiverStage: Stages a delivery passes through
- RejectionReason: Why a delivery was rejected
- StageTransition: Record of one stage change
- DeliveryStateMachine: Enforces valid transitions for one delivery
"""

from hookbot.state.machine import DeliveryStateMachine, InvalidTransitionError
from hookbot.state.models import (
    VALID_TRANSITIONS,
    ReceiverStage,
    RejectionReason,
    StageTransition,
    is_terminal_stage,
    is_valid_transition,
)

__all__ = [
    "ReceiverStage",
    "RejectionReason",
    "StageTransition",
    "VALID_TRANSITIONS",
    "is_valid_transition",
    "is_terminal_stage",
    "DeliveryStateMachine",
    "InvalidTransitionError",
]
