"""
Campaign Status Machine

Single CampaignStatus enum is the source of truth.
State transitions (forward edges only):
    DRAFT → PENDING_APPROVAL | REJECTED
    PENDING_APPROVAL → ACTIVE | REJECTED
    ACTIVE ↔ PAUSED
    ACTIVE | PAUSED → COMPLETED

COMPLETED and REJECTED are terminal.
Closure is only allowed from ACTIVE or PAUSED.
"""
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from app.models.db_models import CampaignStatus


class CampaignStatusTransitionError(Exception):
    """Raised when a status transition is invalid."""
    pass


StatusLike = Union[CampaignStatus, str]


def _coerce(status: StatusLike) -> Optional[CampaignStatus]:
    """Map a raw status value to the enum, None for unknown values."""
    if isinstance(status, CampaignStatus):
        return status
    try:
        return CampaignStatus(status)
    except ValueError:
        return None


class CampaignStatusMachine:
    """
    Campaign lifecycle state machine.

    Transitions are deterministic and table-driven.
    Unknown source states never transition anywhere.
    """

    TRANSITIONS: Dict[CampaignStatus, FrozenSet[CampaignStatus]] = {
        CampaignStatus.DRAFT: frozenset({CampaignStatus.PENDING_APPROVAL, CampaignStatus.REJECTED}),
        CampaignStatus.PENDING_APPROVAL: frozenset({CampaignStatus.ACTIVE, CampaignStatus.REJECTED}),
        CampaignStatus.ACTIVE: frozenset({CampaignStatus.PAUSED, CampaignStatus.COMPLETED}),
        CampaignStatus.PAUSED: frozenset({CampaignStatus.ACTIVE, CampaignStatus.COMPLETED}),
        CampaignStatus.COMPLETED: frozenset(),  # Terminal
        CampaignStatus.REJECTED: frozenset(),   # Terminal
    }

    CLOSABLE_STATES = frozenset({CampaignStatus.ACTIVE, CampaignStatus.PAUSED})

    def can_transition_to(self, current: StatusLike, target: StatusLike) -> bool:
        """True iff target is in the allowed set for current."""
        source = _coerce(current)
        destination = _coerce(target)
        if source is None or destination is None:
            return False
        return destination in self.TRANSITIONS.get(source, frozenset())

    def check_transition(self, current: StatusLike, target: StatusLike) -> Tuple[bool, Optional[str]]:
        """
        Check if a state transition is allowed.

        Returns:
            Tuple of (is_allowed, error_message)
        """
        if _coerce(current) is None:
            return False, f"Unknown campaign status: {current}"
        if _coerce(target) is None:
            return False, f"Unknown campaign status: {target}"
        if not self.can_transition_to(current, target):
            return False, f"Invalid transition: {_value(current)} -> {_value(target)}"
        return True, None

    def transition(self, current: StatusLike, target: StatusLike) -> CampaignStatus:
        """
        Perform a state transition.

        Raises:
            CampaignStatusTransitionError: If transition is not allowed
        """
        is_allowed, error = self.check_transition(current, target)
        if not is_allowed:
            raise CampaignStatusTransitionError(error)
        return _coerce(target)

    def can_close(self, current: StatusLike) -> bool:
        """Closure requires ACTIVE or PAUSED."""
        return _coerce(current) in self.CLOSABLE_STATES

    def get_available_transitions(self, current: StatusLike) -> List[CampaignStatus]:
        source = _coerce(current)
        if source is None:
            return []
        return sorted(self.TRANSITIONS[source], key=lambda s: s.value)

    def is_terminal(self, status: StatusLike) -> bool:
        """Check if state is terminal (no further transitions possible)."""
        source = _coerce(status)
        return source is not None and not self.TRANSITIONS[source]


def _value(status: StatusLike) -> str:
    return status.value if isinstance(status, CampaignStatus) else str(status)


def can_transition_to(current: StatusLike, target: StatusLike) -> bool:
    """Module-level shortcut for CampaignStatusMachine().can_transition_to."""
    return CampaignStatusMachine().can_transition_to(current, target)
