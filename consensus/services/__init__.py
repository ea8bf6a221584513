"""
Consensus Services

Voter resolution, vote recording, outcome calculation, deadlock detection
and finalization.
"""

from consensus.services.deadlock import check_deadlock
from consensus.services.decision_service import DecisionService
from consensus.services.directory import (
    MemberPage,
    MembershipDirectory,
    SlackMembershipDirectory,
    iter_member_pages,
)
from consensus.services.finalization import FinalizationTrigger
from consensus.services.ledger import VoteLedger
from consensus.services.lifecycle import DecisionLifecycle
from consensus.services.outcome import (
    calculate_outcome,
    calculate_simple_majority,
    calculate_super_majority,
    calculate_unanimity,
    calculate_vote_counts,
)
from consensus.services.parsing import (
    ParsedGroupReferences,
    parse_group_references,
    parse_user_ids,
)
from consensus.services.voter_resolver import ResolvedVoterSet, VoterSetResolver

__all__ = [
    # Facade
    "DecisionService",
    # Voter resolution
    "MemberPage",
    "MembershipDirectory",
    "SlackMembershipDirectory",
    "iter_member_pages",
    "ParsedGroupReferences",
    "parse_user_ids",
    "parse_group_references",
    "ResolvedVoterSet",
    "VoterSetResolver",
    # Voting and outcomes
    "VoteLedger",
    "calculate_vote_counts",
    "calculate_simple_majority",
    "calculate_super_majority",
    "calculate_unanimity",
    "calculate_outcome",
    "check_deadlock",
    # Finalization
    "FinalizationTrigger",
    "DecisionLifecycle",
]
