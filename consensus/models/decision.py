"""
Decision Models

Decisions, their frozen voter snapshots, mutable votes, and the value
objects produced by the outcome calculator, deadlock detector and
finalization trigger.
"""

import json
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from consensus.models.base import (
    ConsensusModel,
    DecisionStatus,
    SuccessCriteria,
    TimestampMixin,
    VoteType,
    compound_key,
    convert_neo4j_datetime,
)


class DecisionBase(ConsensusModel):
    """Base decision fields."""

    name: str = Field(min_length=1, max_length=200)
    proposal: str = Field(min_length=1, max_length=10000)
    success_criteria: SuccessCriteria = Field(default=SuccessCriteria.SIMPLE_MAJORITY)
    channel_id: str | None = None
    quorum: int | None = Field(
        default=None,
        ge=1,
        description="Custom quorum for unanimous decisions (defaults to voter count)",
    )


class DecisionCreate(DecisionBase):
    """Schema for creating a decision together with its voter set."""

    deadline: datetime | str | None = Field(
        default=None,
        description="Voting deadline; ISO timestamp or YYYY-MM-DD (defaults to 5 business days)",
    )
    voters: str | list[str] = Field(
        default="",
        description="Individual user references: mentions, raw ids, or a list",
    )
    user_groups: str | list[str] = Field(
        default="",
        description="Group references: subteam mentions, raw ids, @handles, or a list",
    )
    include_channel_members: bool = Field(
        default=False,
        description="Expand the voter set to every human member of channel_id",
    )


class Decision(DecisionBase, TimestampMixin):
    """Complete decision schema."""

    id: str
    creator_id: str
    deadline: datetime
    status: DecisionStatus = Field(default=DecisionStatus.ACTIVE)

    # Frozen at finalization
    outcome: "OutcomeResult | None" = None
    finalized_at: datetime | None = None
    finalization_reason: str | None = None

    @field_validator("deadline", mode="before")
    @classmethod
    def convert_deadline(cls, v: Any) -> datetime:
        return convert_neo4j_datetime(v)

    @field_validator("finalized_at", mode="before")
    @classmethod
    def convert_finalized_at(cls, v: Any) -> datetime | None:
        if v is None:
            return None
        return convert_neo4j_datetime(v)

    @field_validator("outcome", mode="before")
    @classmethod
    def parse_outcome(cls, v: Any) -> Any:
        """Handle outcome being stored as JSON string in database."""
        if isinstance(v, str):
            return json.loads(v) if v else None
        return v

    @property
    def is_active(self) -> bool:
        """Check if the decision is still open for voting."""
        return self.status == DecisionStatus.ACTIVE


class Voter(ConsensusModel):
    """A user required to vote on a specific decision (immutable snapshot)."""

    decision_id: str
    user_id: str
    required: bool = True
    created_at: datetime | None = None

    @property
    def key(self) -> str:
        return compound_key(self.decision_id, self.user_id)


class Vote(ConsensusModel):
    """A single voter's current choice on a decision."""

    decision_id: str
    user_id: str
    vote_type: VoteType
    voted_at: datetime

    @field_validator("voted_at", mode="before")
    @classmethod
    def convert_voted_at(cls, v: Any) -> datetime:
        return convert_neo4j_datetime(v)

    @property
    def key(self) -> str:
        return compound_key(self.decision_id, self.user_id)


# ═══════════════════════════════════════════════════════════════
# CALCULATION RESULTS
# ═══════════════════════════════════════════════════════════════


class VoteCounts(ConsensusModel):
    """Tally of votes by type."""

    yes: int = 0
    no: int = 0
    abstain: int = 0
    total: int = 0


class OutcomeResult(ConsensusModel):
    """Pass/fail verdict of a success-criteria policy."""

    policy: SuccessCriteria
    passed: bool
    reason: str
    vote_counts: VoteCounts
    percentage: float = 0.0
    required_voters_count: int | None = None
    missing_votes: int | None = None
    quorum: int | None = None
    quorum_met: bool | None = None


class DeadlockResult(ConsensusModel):
    """Whether the outcome is already mathematically fixed."""

    is_deadlocked: bool
    reason: str = ""
    vote_counts: VoteCounts
    remaining_votes: int
    best_case_percentage: float | None = None


class FinalizationCheck(ConsensusModel):
    """Answer to 'should this decision leave the active state now?'."""

    should_finalize: bool
    reason: str
    all_votes_submitted: bool = False
    deadline_reached: bool = False


class FinalizationResult(ConsensusModel):
    """Result of a finalization attempt."""

    decision_id: str
    finalized: bool = False
    already_finalized: bool = False
    status: DecisionStatus
    outcome: OutcomeResult | None = None
    reason: str = ""


class VoteReceipt(ConsensusModel):
    """Returned to the caller after a successful vote."""

    vote: Vote
    vote_counts: VoteCounts
    finalization: FinalizationResult | None = None


class DecisionSummary(ConsensusModel):
    """Read model for presentation layers."""

    decision_id: str
    name: str
    status: DecisionStatus
    success_criteria: SuccessCriteria
    deadline: datetime
    vote_counts: VoteCounts
    required_voters_count: int
    outcome: OutcomeResult | None = None


class SweepEntry(ConsensusModel):
    """Per-decision line of a sweep summary."""

    decision_id: str
    name: str
    success: bool
    status: DecisionStatus | None = None
    error: str | None = None


class SweepSummary(ConsensusModel):
    """Summary of a periodic sweep over active decisions."""

    total: int = 0
    finalized: int = 0
    skipped: int = 0
    errors: int = 0
    decisions: list[SweepEntry] = Field(default_factory=list)


Decision.model_rebuild()
