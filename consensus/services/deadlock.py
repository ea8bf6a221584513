"""
Deadlock Detector

Advisory check for whether a decision's outcome is already mathematically
fixed. The remaining voters are assumed to all vote yes (the best case);
if the decision still cannot pass, it is deadlocked.
"""

from collections.abc import Iterable

from consensus.config import get_settings
from consensus.errors import ValidationError
from consensus.models.base import SuccessCriteria
from consensus.models.decision import DeadlockResult, Vote, VoteCounts
from consensus.services.outcome import (
    calculate_outcome,
    calculate_simple_majority,
    calculate_super_majority,
    calculate_vote_counts,
    percentage_of,
)


def _best_case(counts: VoteCounts, remaining: int) -> VoteCounts:
    return VoteCounts(
        yes=counts.yes + remaining,
        no=counts.no,
        abstain=counts.abstain,
        total=counts.total + remaining,
    )


def check_deadlock(
    votes: Iterable[Vote],
    criteria: SuccessCriteria | str,
    required_voters_count: int,
    quorum: int | None = None,
) -> DeadlockResult:
    """
    Determine whether the decision can no longer pass.

    Args:
        votes: Current votes on the decision
        criteria: Success criteria policy
        required_voters_count: Size of the voter set
        quorum: Custom quorum (unanimous only)

    Raises:
        ValidationError: Unknown policy
    """
    try:
        policy = SuccessCriteria(criteria)
    except ValueError as e:
        raise ValidationError(
            f"Unknown success criteria '{criteria}'",
            success_criteria=str(criteria),
        ) from e

    votes = list(votes)
    counts = calculate_vote_counts(votes)
    remaining = max(0, required_voters_count - counts.total)

    def result(deadlocked: bool, reason: str, best: float | None = None) -> DeadlockResult:
        return DeadlockResult(
            is_deadlocked=deadlocked,
            reason=reason,
            vote_counts=counts,
            remaining_votes=remaining,
            best_case_percentage=best,
        )

    if policy == SuccessCriteria.UNANIMOUS:
        if counts.no > 0:
            return result(True, f"Unanimity impossible: {counts.no} no vote(s) cast")
        if remaining > 0:
            return result(False, f"{remaining} vote(s) outstanding")
        outcome = calculate_outcome(votes, policy, required_voters_count, quorum)
        if outcome.passed:
            return result(False, "Outcome passes")
        return result(True, f"All votes cast and outcome fails: {outcome.reason}")

    settings = get_settings()
    best = _best_case(counts, remaining)

    if policy == SuccessCriteria.SIMPLE_MAJORITY:
        if calculate_simple_majority(counts).passed:
            return result(False, "Already passing", percentage_of(counts.yes, counts.total))
        best_outcome = calculate_simple_majority(best)
        best_pct = percentage_of(best.yes, best.total)
        threshold_pct = round(settings.simple_majority_threshold * 100)
        if best_outcome.passed:
            return result(False, f"Best case {best_pct}% exceeds {threshold_pct}%", best_pct)
        return result(
            True,
            f"Best case {best_pct}% cannot exceed {threshold_pct}%",
            best_pct,
        )

    # super majority: the denominator is fixed at the required voter count
    if calculate_super_majority(counts, required_voters_count).passed:
        return result(
            False,
            "Already passing",
            percentage_of(counts.yes, required_voters_count),
        )
    best_outcome = calculate_super_majority(best, required_voters_count)
    best_pct = percentage_of(best.yes, required_voters_count)
    threshold_pct = round(settings.supermajority_threshold * 100)
    if best_outcome.passed:
        return result(False, f"Best case {best_pct}% reaches {threshold_pct}%", best_pct)
    return result(True, f"Best case {best_pct}% cannot reach {threshold_pct}%", best_pct)
