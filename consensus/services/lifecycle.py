"""
Decision Lifecycle

    active ──> approved
       └─────> rejected

Both terminal states are final. Stores only expose a conditional status
write, and the finalization trigger is the only caller that uses it.
"""

from consensus.errors import ConflictError
from consensus.models.base import DecisionStatus


class DecisionLifecycle:
    """Rules for moving a decision between statuses."""

    ALLOWED_TRANSITIONS: dict[DecisionStatus, frozenset[DecisionStatus]] = {
        DecisionStatus.ACTIVE: frozenset({DecisionStatus.APPROVED, DecisionStatus.REJECTED}),
        DecisionStatus.APPROVED: frozenset(),
        DecisionStatus.REJECTED: frozenset(),
    }

    @classmethod
    def can_transition(
        cls,
        current: DecisionStatus | str,
        target: DecisionStatus | str,
    ) -> bool:
        return DecisionStatus(target) in cls.ALLOWED_TRANSITIONS[DecisionStatus(current)]

    @classmethod
    def ensure_transition(
        cls,
        current: DecisionStatus | str,
        target: DecisionStatus | str,
        decision_id: str | None = None,
    ) -> None:
        """
        Raises:
            ConflictError: If the transition is not allowed
        """
        if not cls.can_transition(current, target):
            raise ConflictError(
                f"Cannot move decision from {DecisionStatus(current).value} "
                f"to {DecisionStatus(target).value}",
                decision_id=decision_id,
                current_status=DecisionStatus(current).value,
                target_status=DecisionStatus(target).value,
            )

    @classmethod
    def is_terminal(cls, status: DecisionStatus | str) -> bool:
        return not cls.ALLOWED_TRANSITIONS[DecisionStatus(status)]

    @staticmethod
    def status_for(passed: bool) -> DecisionStatus:
        """Terminal status for an outcome."""
        return DecisionStatus.APPROVED if passed else DecisionStatus.REJECTED
