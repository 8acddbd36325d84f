"""
Claim Status State Machine.

Provides:
- Valid status transitions
- Transition validation

Verified: 2026-10-18

State Diagram:
    DRAFT -> SUBMITTED
    SUBMITTED -> PROCESSING
    PROCESSING -> PAID | DENIED
    DENIED -> SUBMITTED (resubmission)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from claimscrub.core.enums import ClaimStatus

logger = logging.getLogger(__name__)


class TransitionEvent(str, Enum):
    """Events that trigger state transitions."""

    SUBMIT = "submit"
    START_PROCESSING = "start_processing"
    PAY = "pay"
    DENY = "deny"
    RESUBMIT = "resubmit"


@dataclass
class Transition:
    """Represents a valid state transition."""

    from_status: ClaimStatus
    to_status: ClaimStatus
    event: TransitionEvent
    requires_validation: bool = False  # Claim must pass scrubbing first


@dataclass
class TransitionResult:
    """Result of a transition attempt."""

    success: bool
    from_status: ClaimStatus
    to_status: Optional[ClaimStatus] = None
    error: Optional[str] = None
    transition: Optional[Transition] = None


# =============================================================================
# Valid Transitions Definition
# =============================================================================


VALID_TRANSITIONS: list[Transition] = [
    Transition(
        from_status=ClaimStatus.DRAFT,
        to_status=ClaimStatus.SUBMITTED,
        event=TransitionEvent.SUBMIT,
        requires_validation=True,
    ),
    Transition(
        from_status=ClaimStatus.SUBMITTED,
        to_status=ClaimStatus.PROCESSING,
        event=TransitionEvent.START_PROCESSING,
    ),
    Transition(
        from_status=ClaimStatus.PROCESSING,
        to_status=ClaimStatus.PAID,
        event=TransitionEvent.PAY,
    ),
    Transition(
        from_status=ClaimStatus.PROCESSING,
        to_status=ClaimStatus.DENIED,
        event=TransitionEvent.DENY,
    ),
    Transition(
        from_status=ClaimStatus.DENIED,
        to_status=ClaimStatus.SUBMITTED,
        event=TransitionEvent.RESUBMIT,
        requires_validation=True,
    ),
]


# =============================================================================
# State Machine
# =============================================================================


class ClaimStateMachine:
    """State machine for claim status transitions."""

    def __init__(self):
        self._from_status_map: dict[ClaimStatus, list[Transition]] = {}
        for transition in VALID_TRANSITIONS:
            self._from_status_map.setdefault(transition.from_status, []).append(transition)

    def get_valid_transitions(self, status: ClaimStatus) -> list[Transition]:
        """Get all valid transitions from a given status."""
        return self._from_status_map.get(status, [])

    def get_next_statuses(self, status: ClaimStatus) -> list[ClaimStatus]:
        """Get all possible next statuses from current status."""
        return [t.to_status for t in self.get_valid_transitions(status)]

    def find_transition(
        self,
        from_status: ClaimStatus,
        to_status: ClaimStatus,
    ) -> Optional[Transition]:
        for transition in self.get_valid_transitions(from_status):
            if transition.to_status == to_status:
                return transition
        return None

    def validate_transition(
        self,
        from_status: ClaimStatus,
        to_status: ClaimStatus,
    ) -> TransitionResult:
        """
        Validate a status change.

        Returns:
            TransitionResult indicating success/failure
        """
        transition = self.find_transition(from_status, to_status)
        if transition is None:
            allowed = ", ".join(s.value for s in self.get_next_statuses(from_status)) or "none"
            error = (
                f"Invalid transition: {from_status.value} -> {to_status.value} "
                f"(allowed: {allowed})"
            )
            logger.warning(error)
            return TransitionResult(success=False, from_status=from_status, error=error)

        return TransitionResult(
            success=True,
            from_status=from_status,
            to_status=to_status,
            transition=transition,
        )


# =============================================================================
# Singleton Instance
# =============================================================================


_state_machine: Optional[ClaimStateMachine] = None


def get_claim_state_machine() -> ClaimStateMachine:
    """Get singleton state machine instance."""
    global _state_machine
    if _state_machine is None:
        _state_machine = ClaimStateMachine()
    return _state_machine
