"""
Decision Service

Entry point for presentation layers (chat commands, HTTP handlers,
schedulers). Wires voter resolution, the vote ledger, outcome calculation,
deadlock detection and finalization over a single store.
"""

import structlog

from consensus.config import get_settings
from consensus.errors import NotFoundError, ValidationError
from consensus.models.base import VoteType, generate_id
from consensus.models.decision import (
    Decision,
    DecisionCreate,
    DeadlockResult,
    DecisionSummary,
    FinalizationResult,
    SweepSummary,
    Voter,
    VoteReceipt,
)
from consensus.monitoring.logging import bind_context, unbind_context
from consensus.repositories.base import ConsensusStore
from consensus.services.deadlock import check_deadlock
from consensus.services.directory import MembershipDirectory
from consensus.services.finalization import REASON_DEADLOCK, FinalizationTrigger
from consensus.services.ledger import VoteLedger
from consensus.services.outcome import calculate_vote_counts
from consensus.services.voter_resolver import VoterSetResolver
from consensus.utils.clock import Clock, SystemClock
from consensus.utils.dates import default_deadline, parse_deadline

logger = structlog.get_logger(__name__)


class DecisionService:
    """
    Facade over the consensus engine.

    Every operation is a stateless async call against the store, so any
    number of service instances can share one store.
    """

    def __init__(
        self,
        store: ConsensusStore,
        directory: MembershipDirectory,
        clock: Clock | None = None,
        resolver: VoterSetResolver | None = None,
    ) -> None:
        self._settings = get_settings()
        self._store = store
        self._clock = clock or SystemClock()
        self._resolver = resolver or VoterSetResolver(directory)
        self._ledger = VoteLedger(store, self._clock)
        self._trigger = FinalizationTrigger(store, self._clock)

    @property
    def trigger(self) -> FinalizationTrigger:
        return self._trigger

    async def create_decision(self, data: DecisionCreate, creator_id: str) -> Decision:
        """
        Resolve the voter set and create the decision with its snapshot.

        Nothing is stored unless the voter set resolves completely.

        Raises:
            ValidationError: Bad deadline, unresolved group handle, empty or
                oversized voter set
            DependencyError: A membership lookup failed
        """
        resolved = await self._resolver.resolve(
            users=data.voters,
            groups=data.user_groups,
            include_channel=data.include_channel_members,
            channel_id=data.channel_id,
        )

        if resolved.unresolved_handles:
            raise ValidationError(
                "Could not resolve user group(s): "
                + ", ".join(f"@{h}" for h in resolved.unresolved_handles),
                unresolved_handles=resolved.unresolved_handles,
            )

        if not resolved.voter_ids and not self._settings.allow_empty_voter_set:
            raise ValidationError("A decision needs at least one voter")

        now = self._clock.now()
        if data.deadline is None:
            deadline = default_deadline(now, self._settings.default_deadline_business_days)
        else:
            try:
                deadline = parse_deadline(data.deadline)
            except ValueError as e:
                raise ValidationError(str(e), deadline=str(data.deadline)) from e

        decision = Decision(
            id=generate_id(),
            name=data.name,
            proposal=data.proposal,
            success_criteria=data.success_criteria,
            channel_id=data.channel_id,
            quorum=data.quorum,
            creator_id=creator_id,
            deadline=deadline,
            created_at=now,
            updated_at=now,
        )
        voters = [
            Voter(decision_id=decision.id, user_id=user_id, created_at=now)
            for user_id in resolved.voter_ids
        ]

        created = await self._store.create_decision(decision, voters)
        logger.info(
            "decision_created",
            decision_id=created.id,
            creator_id=creator_id,
            success_criteria=created.success_criteria,
            voter_count=len(voters),
            deadline=created.deadline.isoformat(),
        )
        return created

    async def _require(self, decision_id: str) -> Decision:
        decision = await self._store.get_decision(decision_id)
        if decision is None:
            raise NotFoundError(f"Decision {decision_id} not found", decision_id=decision_id)
        return decision

    async def get_summary(self, decision_id: str) -> DecisionSummary:
        decision = await self._require(decision_id)
        voters = await self._store.get_voters(decision_id)
        votes = await self._store.get_votes(decision_id)
        return DecisionSummary(
            decision_id=decision.id,
            name=decision.name,
            status=decision.status,
            success_criteria=decision.success_criteria,
            deadline=decision.deadline,
            vote_counts=calculate_vote_counts(votes),
            required_voters_count=len(voters),
            outcome=decision.outcome,
        )

    async def submit_vote(
        self,
        decision_id: str,
        user_id: str,
        vote_type: VoteType | str,
    ) -> VoteReceipt:
        """
        Record a vote, then evaluate finalization in the same call.

        Raises:
            ValidationError, NotFoundError, IneligibleVoterError, ConflictError
        """
        bind_context(decision_id=decision_id, user_id=user_id)
        try:
            vote = await self._ledger.record_vote(decision_id, user_id, vote_type)
            finalization = await self._trigger.finalize(decision_id)

            if not finalization.finalized and not finalization.already_finalized:
                if self._settings.finalize_on_deadlock:
                    deadlock = await self.check_deadlock(decision_id)
                    if deadlock.is_deadlocked:
                        finalization = await self._trigger.finalize(
                            decision_id, force=True, reason=REASON_DEADLOCK
                        )

            votes = await self._store.get_votes(decision_id)
            return VoteReceipt(
                vote=vote,
                vote_counts=calculate_vote_counts(votes),
                finalization=finalization,
            )
        finally:
            unbind_context("decision_id", "user_id")

    async def evaluate(self, decision_id: str) -> FinalizationResult:
        """Explicitly re-evaluate a decision for finalization."""
        return await self._trigger.finalize(decision_id)

    async def sweep(self) -> SweepSummary:
        """Evaluate every active decision; meant to be called periodically."""
        return await self._trigger.finalize_ready_decisions()

    async def check_deadlock(self, decision_id: str) -> DeadlockResult:
        decision = await self._require(decision_id)
        voters = await self._store.get_voters(decision_id)
        voter_ids = {v.user_id for v in voters}
        votes = [v for v in await self._store.get_votes(decision_id) if v.user_id in voter_ids]
        result = check_deadlock(votes, decision.success_criteria, len(voters), decision.quorum)
        if result.is_deadlocked:
            logger.info(
                "deadlock_detected",
                decision_id=decision_id,
                reason=result.reason,
                remaining_votes=result.remaining_votes,
            )
        return result
