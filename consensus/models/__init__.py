"""
Consensus Models

Pydantic models for decisions, voters, votes and calculation results.
"""

from consensus.models.base import (
    ConsensusModel,
    DecisionStatus,
    SuccessCriteria,
    TimestampMixin,
    VoteType,
    compound_key,
    generate_id,
)
from consensus.models.decision import (
    Decision,
    DecisionCreate,
    DecisionSummary,
    DeadlockResult,
    FinalizationCheck,
    FinalizationResult,
    OutcomeResult,
    SweepEntry,
    SweepSummary,
    Vote,
    VoteCounts,
    Voter,
    VoteReceipt,
)

__all__ = [
    # Base
    "ConsensusModel",
    "TimestampMixin",
    "DecisionStatus",
    "SuccessCriteria",
    "VoteType",
    "compound_key",
    "generate_id",
    # Entities
    "Decision",
    "DecisionCreate",
    "Voter",
    "Vote",
    # Results
    "VoteCounts",
    "OutcomeResult",
    "DeadlockResult",
    "FinalizationCheck",
    "FinalizationResult",
    "VoteReceipt",
    "DecisionSummary",
    "SweepEntry",
    "SweepSummary",
]
