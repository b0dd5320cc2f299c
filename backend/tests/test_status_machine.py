"""
Campaign Status Machine Tests

Tests verify:
1. Only forward edges of the lifecycle table are legal
2. Terminal states never transition
3. Unknown statuses are always rejected
4. Closure precondition (active or paused only)
"""
import pytest

from app.models.db_models import CampaignStatus
from app.services.campaign import (
    CampaignStatusMachine,
    CampaignStatusTransitionError,
    can_transition_to,
)


@pytest.fixture
def machine():
    return CampaignStatusMachine()


# =============================================================================
# TRANSITION TABLE
# =============================================================================

class TestTransitions:
    """Tests for the lifecycle transition table."""

    @pytest.mark.parametrize("current,target", [
        (CampaignStatus.DRAFT, CampaignStatus.PENDING_APPROVAL),
        (CampaignStatus.DRAFT, CampaignStatus.REJECTED),
        (CampaignStatus.PENDING_APPROVAL, CampaignStatus.ACTIVE),
        (CampaignStatus.PENDING_APPROVAL, CampaignStatus.REJECTED),
        (CampaignStatus.ACTIVE, CampaignStatus.PAUSED),
        (CampaignStatus.ACTIVE, CampaignStatus.COMPLETED),
        (CampaignStatus.PAUSED, CampaignStatus.ACTIVE),
        (CampaignStatus.PAUSED, CampaignStatus.COMPLETED),
    ])
    def test_allowed_edges(self, machine, current, target):
        assert machine.can_transition_to(current, target)

    @pytest.mark.parametrize("current,target", [
        (CampaignStatus.DRAFT, CampaignStatus.ACTIVE),
        (CampaignStatus.DRAFT, CampaignStatus.COMPLETED),
        (CampaignStatus.PENDING_APPROVAL, CampaignStatus.COMPLETED),
        (CampaignStatus.ACTIVE, CampaignStatus.DRAFT),
        (CampaignStatus.ACTIVE, CampaignStatus.REJECTED),
        (CampaignStatus.PAUSED, CampaignStatus.REJECTED),
    ])
    def test_disallowed_edges(self, machine, current, target):
        assert not machine.can_transition_to(current, target)

    @pytest.mark.parametrize("terminal", [CampaignStatus.COMPLETED, CampaignStatus.REJECTED])
    def test_terminal_states_never_transition(self, machine, terminal):
        for target in CampaignStatus:
            assert not can_transition_to(terminal, target)
        assert machine.is_terminal(terminal)
        assert machine.get_available_transitions(terminal) == []

    def test_accepts_raw_string_values(self, machine):
        """Statuses read from the database arrive as plain strings."""
        assert machine.can_transition_to("active", "completed")
        assert not machine.can_transition_to("completed", "active")

    def test_unknown_source_is_rejected(self, machine):
        assert not machine.can_transition_to("archived", CampaignStatus.ACTIVE)
        assert not machine.can_transition_to(CampaignStatus.ACTIVE, "archived")
        assert machine.get_available_transitions("archived") == []

    def test_available_transitions_from_paused(self, machine):
        assert machine.get_available_transitions(CampaignStatus.PAUSED) == [
            CampaignStatus.ACTIVE,
            CampaignStatus.COMPLETED,
        ]


# =============================================================================
# TRANSITION EXECUTION
# =============================================================================

class TestTransitionExecution:
    """Tests for transition() and check_transition()."""

    def test_transition_returns_target_enum(self, machine):
        assert machine.transition("active", "completed") == CampaignStatus.COMPLETED

    def test_illegal_transition_raises(self, machine):
        with pytest.raises(CampaignStatusTransitionError, match="draft -> completed"):
            machine.transition(CampaignStatus.DRAFT, CampaignStatus.COMPLETED)

    def test_check_transition_reports_unknown_status(self, machine):
        allowed, error = machine.check_transition("archived", "active")
        assert not allowed
        assert "Unknown campaign status" in error


# =============================================================================
# CLOSURE PRECONDITION
# =============================================================================

class TestCanClose:
    """Closure is only allowed from active or paused."""

    @pytest.mark.parametrize("status", [CampaignStatus.ACTIVE, CampaignStatus.PAUSED, "active", "paused"])
    def test_closable(self, machine, status):
        assert machine.can_close(status)

    @pytest.mark.parametrize("status", [
        CampaignStatus.DRAFT,
        CampaignStatus.PENDING_APPROVAL,
        CampaignStatus.COMPLETED,
        CampaignStatus.REJECTED,
        "archived",
    ])
    def test_not_closable(self, machine, status):
        assert not machine.can_close(status)
