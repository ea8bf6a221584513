"""
Decision Lifecycle Tests
"""

import pytest

from consensus.errors import ConflictError
from consensus.models.base import DecisionStatus
from consensus.services.lifecycle import DecisionLifecycle


class TestDecisionLifecycle:
    """Tests for status transitions."""

    @pytest.mark.parametrize("target", [DecisionStatus.APPROVED, DecisionStatus.REJECTED])
    def test_active_to_terminal_allowed(self, target):
        assert DecisionLifecycle.can_transition(DecisionStatus.ACTIVE, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("approved", "rejected"),
            ("rejected", "approved"),
            ("approved", "active"),
            ("rejected", "active"),
            ("active", "active"),
        ],
    )
    def test_other_transitions_rejected(self, current, target):
        assert not DecisionLifecycle.can_transition(current, target)

    def test_ensure_transition_raises_conflict(self):
        with pytest.raises(ConflictError) as exc_info:
            DecisionLifecycle.ensure_transition("approved", "rejected", decision_id="dec1")

        assert exc_info.value.code == "decision_finalized"
        assert exc_info.value.details["decision_id"] == "dec1"

    def test_is_terminal(self):
        assert not DecisionLifecycle.is_terminal("active")
        assert DecisionLifecycle.is_terminal(DecisionStatus.APPROVED)
        assert DecisionLifecycle.is_terminal("rejected")

    def test_status_for(self):
        assert DecisionLifecycle.status_for(True) == DecisionStatus.APPROVED
        assert DecisionLifecycle.status_for(False) == DecisionStatus.REJECTED
