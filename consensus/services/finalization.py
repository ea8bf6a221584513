"""
Finalization Trigger

Decides when a decision leaves the active state and commits the terminal
status exactly once. Triggering is at-least-once (every vote, every sweep,
explicit calls) so the commit is a compare-and-swap on ``status``: whoever
loses the race sees ``already_finalized``.
"""

import structlog

from consensus.errors import NotFoundError
from consensus.models.base import DecisionStatus
from consensus.models.decision import (
    Decision,
    FinalizationCheck,
    FinalizationResult,
    SweepEntry,
    SweepSummary,
    Vote,
    Voter,
)
from consensus.repositories.base import ConsensusStore
from consensus.services.lifecycle import DecisionLifecycle
from consensus.services.outcome import calculate_outcome
from consensus.utils.clock import Clock, SystemClock

logger = structlog.get_logger(__name__)

REASON_ALL_VOTES = "all votes submitted"
REASON_DEADLINE = "deadline reached"
REASON_NOT_READY = "not yet ready"
REASON_FORCED = "forced"
REASON_DEADLOCK = "deadlock"


class FinalizationTrigger:
    """Evaluates readiness and finalizes decisions."""

    def __init__(self, store: ConsensusStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()

    def should_finalize(
        self,
        decision: Decision,
        voters: list[Voter],
        votes: list[Vote],
    ) -> FinalizationCheck:
        """
        Ready when every voter in the set has voted, or the deadline passed.

        Votes from users outside the voter set are ignored for completion.
        """
        voter_ids = {v.user_id for v in voters}
        voted = {v.user_id for v in votes if v.user_id in voter_ids}
        all_submitted = len(voted) >= len(voter_ids)
        deadline_reached = self._clock.now() >= decision.deadline

        if all_submitted:
            reason = REASON_ALL_VOTES
        elif deadline_reached:
            reason = REASON_DEADLINE
        else:
            reason = REASON_NOT_READY

        return FinalizationCheck(
            should_finalize=all_submitted or deadline_reached,
            reason=reason,
            all_votes_submitted=all_submitted,
            deadline_reached=deadline_reached,
        )

    async def finalize(
        self,
        decision_id: str,
        force: bool = False,
        reason: str | None = None,
    ) -> FinalizationResult:
        """
        Finalize a decision if it is ready.

        Args:
            decision_id: Decision to evaluate
            force: Skip the readiness check
            reason: Reason recorded when forcing (defaults to "forced")

        Raises:
            NotFoundError: Unknown decision
        """
        decision = await self._store.get_decision(decision_id)
        if decision is None:
            raise NotFoundError(f"Decision {decision_id} not found", decision_id=decision_id)

        if DecisionLifecycle.is_terminal(decision.status):
            logger.debug("finalize_skipped_terminal", decision_id=decision_id)
            return FinalizationResult(
                decision_id=decision_id,
                already_finalized=True,
                status=decision.status,
                outcome=decision.outcome,
                reason=decision.finalization_reason or "",
            )

        voters = await self._store.get_voters(decision_id)
        votes = await self._store.get_votes(decision_id)

        check = self.should_finalize(decision, voters, votes)
        if not check.should_finalize and not force:
            return FinalizationResult(
                decision_id=decision_id,
                status=decision.status,
                reason=REASON_NOT_READY,
            )
        final_reason = check.reason if check.should_finalize else (reason or REASON_FORCED)

        voter_ids = {v.user_id for v in voters}
        outcome = calculate_outcome(
            [v for v in votes if v.user_id in voter_ids],
            decision.success_criteria,
            len(voters),
            decision.quorum,
        )
        new_status = DecisionLifecycle.status_for(outcome.passed)
        DecisionLifecycle.ensure_transition(decision.status, new_status, decision_id)

        updated = await self._store.transition_status(
            decision_id,
            expected_status=DecisionStatus.ACTIVE,
            new_status=new_status,
            outcome=outcome,
            finalized_at=self._clock.now(),
            reason=final_reason,
        )

        if updated is None:
            # Another finalizer committed first; report what it stored
            current = await self._store.get_decision(decision_id)
            logger.info("finalize_lost_race", decision_id=decision_id)
            return FinalizationResult(
                decision_id=decision_id,
                already_finalized=True,
                status=current.status if current else new_status,
                outcome=current.outcome if current else None,
                reason=(current.finalization_reason if current else None) or "",
            )

        logger.info(
            "decision_finalized",
            decision_id=decision_id,
            status=updated.status,
            reason=final_reason,
            passed=outcome.passed,
            yes=outcome.vote_counts.yes,
            no=outcome.vote_counts.no,
            abstain=outcome.vote_counts.abstain,
        )
        return FinalizationResult(
            decision_id=decision_id,
            finalized=True,
            status=updated.status,
            outcome=outcome,
            reason=final_reason,
        )

    async def finalize_ready_decisions(self) -> SweepSummary:
        """
        Sweep all active decisions and finalize those that are ready.

        A failure on one decision is logged and counted; the sweep goes on.
        """
        decisions = await self._store.list_active_decisions()
        summary = SweepSummary(total=len(decisions))
        logger.info("sweep_started", active_decisions=len(decisions))

        for decision in decisions:
            try:
                result = await self.finalize(decision.id)
            except Exception as e:
                logger.error(
                    "sweep_decision_failed",
                    decision_id=decision.id,
                    error=str(e),
                    exc_info=True,
                )
                summary.errors += 1
                summary.decisions.append(
                    SweepEntry(
                        decision_id=decision.id,
                        name=decision.name,
                        success=False,
                        error=str(e),
                    )
                )
                continue

            if result.finalized:
                summary.finalized += 1
            else:
                summary.skipped += 1
            summary.decisions.append(
                SweepEntry(
                    decision_id=decision.id,
                    name=decision.name,
                    success=True,
                    status=result.status,
                )
            )

        logger.info(
            "sweep_completed",
            total=summary.total,
            finalized=summary.finalized,
            skipped=summary.skipped,
            errors=summary.errors,
        )
        return summary
