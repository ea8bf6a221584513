"""
Base Store

Abstract persistence interface for the consensus engine. Only key-value
semantics are required: get by id, atomic single-key upsert, conditional
write for finalization, and filtered queries. No joins or multi-key
transactions beyond creating a decision together with its voter snapshot.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime

import structlog

from consensus.models.base import DecisionStatus
from consensus.models.decision import Decision, OutcomeResult, Vote, Voter


class ConsensusStore(ABC):
    """
    Abstract store for decisions, voter snapshots and votes.

    Implementations must make ``upsert_vote`` a full-record replace that is
    atomic per (decision_id, user_id) key, and ``transition_status`` a
    compare-and-swap on ``Decision.status``.
    """

    def __init__(self) -> None:
        self.logger = structlog.get_logger(self.__class__.__name__)

    def _now(self) -> datetime:
        """Get current UTC timestamp."""
        return datetime.now(UTC)

    @abstractmethod
    async def create_decision(self, decision: Decision, voters: list[Voter]) -> Decision:
        """
        Persist a decision and its voter snapshot together.

        Either both are stored or neither is.
        """

    @abstractmethod
    async def get_decision(self, decision_id: str) -> Decision | None:
        """Get a decision by id."""

    @abstractmethod
    async def list_active_decisions(self) -> list[Decision]:
        """All decisions whose status is still active."""

    @abstractmethod
    async def get_voters(self, decision_id: str) -> list[Voter]:
        """The decision's voter snapshot."""

    async def is_voter(self, decision_id: str, user_id: str) -> bool:
        """Whether the user is in the decision's voter snapshot."""
        voters = await self.get_voters(decision_id)
        return any(v.user_id == user_id for v in voters)

    @abstractmethod
    async def get_votes(self, decision_id: str) -> list[Vote]:
        """All current votes for a decision."""

    @abstractmethod
    async def upsert_vote(self, vote: Vote) -> Vote | None:
        """
        Replace the vote stored under (decision_id, user_id).

        The write is conditional on the decision still being active.

        Returns:
            The stored vote, or None if the decision is missing or not active
        """

    @abstractmethod
    async def transition_status(
        self,
        decision_id: str,
        expected_status: DecisionStatus,
        new_status: DecisionStatus,
        outcome: OutcomeResult,
        finalized_at: datetime,
        reason: str,
    ) -> Decision | None:
        """
        Conditionally move a decision to ``new_status``.

        Commits only if the stored status still equals ``expected_status``.

        Returns:
            The updated decision, or None if the precondition did not hold
        """
