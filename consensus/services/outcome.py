"""
Outcome Calculator

Pure functions that turn a decision's current votes into a pass/fail verdict
under one of three success-criteria policies. Each policy uses a different
denominator:

- simple_majority: yes / votes cast, strictly above the threshold
- super_majority:  yes / required voters, at or above the threshold
- unanimous:       no "no" votes, quorum met, at least one yes

Results are always recomputed from the full vote list; nothing here keeps
running counters.
"""

from collections.abc import Iterable

from consensus.config import get_settings
from consensus.errors import ValidationError
from consensus.models.base import SuccessCriteria, VoteType
from consensus.models.decision import OutcomeResult, Vote, VoteCounts


def calculate_vote_counts(votes: Iterable[Vote]) -> VoteCounts:
    """Tally votes by type. ``total`` is always yes + no + abstain."""
    yes = no = abstain = 0
    for vote in votes:
        vote_type = VoteType(vote.vote_type)
        if vote_type == VoteType.YES:
            yes += 1
        elif vote_type == VoteType.NO:
            no += 1
        else:
            abstain += 1
    return VoteCounts(yes=yes, no=no, abstain=abstain, total=yes + no + abstain)


def percentage_of(numerator: int, denominator: int) -> float:
    """Share as a percentage rounded to two places; 0.0 for an empty denominator."""
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator * 100, 2)


def calculate_simple_majority(
    counts: VoteCounts,
    threshold: float | None = None,
) -> OutcomeResult:
    """More than half of the votes actually cast are yes."""
    if threshold is None:
        threshold = get_settings().simple_majority_threshold

    if counts.total == 0:
        return OutcomeResult(
            policy=SuccessCriteria.SIMPLE_MAJORITY,
            passed=False,
            reason="No votes cast",
            vote_counts=counts,
        )

    passed = counts.yes / counts.total > threshold
    percentage = percentage_of(counts.yes, counts.total)
    return OutcomeResult(
        policy=SuccessCriteria.SIMPLE_MAJORITY,
        passed=passed,
        reason=(
            f"Simple majority {'reached' if passed else 'not reached'}: "
            f"{counts.yes}/{counts.total} yes ({percentage}%)"
        ),
        vote_counts=counts,
        percentage=percentage,
    )


def calculate_super_majority(
    counts: VoteCounts,
    required_voters_count: int,
    threshold: float | None = None,
) -> OutcomeResult:
    """
    At least ``threshold`` of ALL required voters voted yes.

    Non-voters count against: with 10 required voters and 6 yes out of 6
    cast, the share is 60% and the decision fails.
    """
    if threshold is None:
        threshold = get_settings().supermajority_threshold

    if required_voters_count <= 0:
        return OutcomeResult(
            policy=SuccessCriteria.SUPER_MAJORITY,
            passed=False,
            reason="No required voters",
            vote_counts=counts,
            required_voters_count=required_voters_count,
            missing_votes=0,
        )

    passed = counts.yes / required_voters_count >= threshold
    percentage = percentage_of(counts.yes, required_voters_count)
    return OutcomeResult(
        policy=SuccessCriteria.SUPER_MAJORITY,
        passed=passed,
        reason=(
            f"Supermajority {'reached' if passed else 'not reached'}: "
            f"{counts.yes}/{required_voters_count} required voters voted yes "
            f"({percentage}%, needs {round(threshold * 100)}%)"
        ),
        vote_counts=counts,
        percentage=percentage,
        required_voters_count=required_voters_count,
        missing_votes=max(0, required_voters_count - counts.total),
    )


def calculate_unanimity(
    counts: VoteCounts,
    required_voters_count: int,
    quorum: int | None = None,
) -> OutcomeResult:
    """
    Nobody voted no, quorum was met, and at least one vote was yes.

    Abstentions count toward quorum and never block. Quorum defaults to
    the number of required voters.
    """
    effective_quorum = quorum if quorum is not None else required_voters_count

    def result(passed: bool, reason: str, quorum_met: bool) -> OutcomeResult:
        return OutcomeResult(
            policy=SuccessCriteria.UNANIMOUS,
            passed=passed,
            reason=reason,
            vote_counts=counts,
            percentage=percentage_of(counts.yes, counts.total),
            required_voters_count=required_voters_count,
            missing_votes=max(0, required_voters_count - counts.total),
            quorum=effective_quorum,
            quorum_met=quorum_met,
        )

    if required_voters_count <= 0:
        return result(False, "No required voters", False)

    quorum_met = counts.total >= effective_quorum
    if not quorum_met:
        return result(
            False,
            f"Quorum not met: {counts.total}/{effective_quorum} votes cast",
            False,
        )

    if counts.no > 0:
        return result(False, f"Unanimity broken by {counts.no} no vote(s)", True)

    if counts.yes == 0:
        return result(False, "No yes votes; abstentions alone cannot pass", True)

    return result(
        True,
        f"Unanimous: {counts.yes} yes, {counts.abstain} abstain",
        True,
    )


def calculate_outcome(
    votes: Iterable[Vote],
    criteria: SuccessCriteria | str,
    required_voters_count: int,
    quorum: int | None = None,
) -> OutcomeResult:
    """
    Evaluate votes against a decision's success criteria.

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

    counts = calculate_vote_counts(votes)

    if policy == SuccessCriteria.SIMPLE_MAJORITY:
        return calculate_simple_majority(counts)
    if policy == SuccessCriteria.SUPER_MAJORITY:
        return calculate_super_majority(counts, required_voters_count)
    return calculate_unanimity(counts, required_voters_count, quorum)
