"""
Vote Ledger

Records votes. One record per (decision, voter); recording again replaces
the previous choice while the decision is active.
"""

import structlog

from consensus.errors import ConflictError, IneligibleVoterError, NotFoundError, ValidationError
from consensus.models.base import VoteType
from consensus.models.decision import Vote
from consensus.repositories.base import ConsensusStore
from consensus.utils.clock import Clock, SystemClock

logger = structlog.get_logger(__name__)


class VoteLedger:
    """Validates and persists votes."""

    def __init__(self, store: ConsensusStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()

    async def record_vote(
        self,
        decision_id: str,
        user_id: str,
        vote_type: VoteType | str,
    ) -> Vote:
        """
        Upsert a voter's choice on an active decision.

        Args:
            decision_id: Decision being voted on
            user_id: Voter
            vote_type: yes/no/abstain (case-insensitive, common aliases accepted)

        Returns:
            The stored vote

        Raises:
            ValidationError: Malformed vote type
            NotFoundError: Unknown decision
            ConflictError: Decision is no longer active
            IneligibleVoterError: User is not in the decision's voter set
        """
        try:
            choice = VoteType.from_string(vote_type)
        except ValueError as e:
            raise ValidationError(str(e), vote_type=str(vote_type)) from e

        decision = await self._store.get_decision(decision_id)
        if decision is None:
            raise NotFoundError(f"Decision {decision_id} not found", decision_id=decision_id)

        if not decision.is_active:
            logger.warning(
                "vote_rejected_finalized",
                decision_id=decision_id,
                user_id=user_id,
                status=decision.status,
            )
            raise ConflictError(
                "Decision already finalized",
                decision_id=decision_id,
                status=decision.status,
            )

        if not await self._store.is_voter(decision_id, user_id):
            logger.warning(
                "vote_rejected_ineligible",
                decision_id=decision_id,
                user_id=user_id,
            )
            raise IneligibleVoterError(
                "Not a required voter for this decision",
                decision_id=decision_id,
                user_id=user_id,
            )

        vote = Vote(
            decision_id=decision_id,
            user_id=user_id,
            vote_type=choice,
            voted_at=self._clock.now(),
        )

        # The store re-checks the status in the same write; a finalization
        # that landed since the read above makes this return None.
        stored = await self._store.upsert_vote(vote)
        if stored is None:
            logger.warning(
                "vote_rejected_finalized",
                decision_id=decision_id,
                user_id=user_id,
                status="finalized_concurrently",
            )
            raise ConflictError("Decision already finalized", decision_id=decision_id)

        logger.info(
            "vote_recorded",
            decision_id=decision_id,
            user_id=user_id,
            vote_type=stored.vote_type,
        )
        return stored
