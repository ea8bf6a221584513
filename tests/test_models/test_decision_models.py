"""
Decision Model Tests

Tests for decision, voter and vote models and calculation results.
"""

import json
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from consensus.models.base import DecisionStatus, SuccessCriteria, VoteType
from consensus.models.decision import (
    Decision,
    DecisionCreate,
    OutcomeResult,
    Vote,
    VoteCounts,
    Voter,
)


@pytest.fixture
def sample_decision_data():
    """Sample stored decision record."""
    now = datetime(2024, 3, 6, 12, 0, tzinfo=UTC)
    return {
        "id": "dec123",
        "name": "Adopt RFC process",
        "proposal": "All cross-team changes need an RFC",
        "success_criteria": "super_majority",
        "channel_id": "C0GENERAL",
        "quorum": None,
        "creator_id": "U0CREATOR",
        "deadline": "2024-03-13T23:59:59+00:00",
        "status": "active",
        "outcome": None,
        "finalized_at": None,
        "finalization_reason": None,
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
    }


# =============================================================================
# DecisionCreate Tests
# =============================================================================


class TestDecisionCreate:
    """Tests for DecisionCreate schema."""

    def test_defaults(self):
        data = DecisionCreate(name="Name", proposal="Proposal")

        assert data.success_criteria == SuccessCriteria.SIMPLE_MAJORITY
        assert data.deadline is None
        assert data.voters == ""
        assert data.include_channel_members is False

    def test_strips_whitespace(self):
        data = DecisionCreate(name="  Name  ", proposal=" Proposal ")

        assert data.name == "Name"
        assert data.proposal == "Proposal"

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            DecisionCreate(name="", proposal="Proposal")

    def test_invalid_criteria_rejected(self):
        with pytest.raises(ValidationError):
            DecisionCreate(name="Name", proposal="Proposal", success_criteria="plurality")

    def test_quorum_must_be_positive(self):
        with pytest.raises(ValidationError):
            DecisionCreate(name="Name", proposal="Proposal", quorum=0)

    def test_voters_accept_list(self):
        data = DecisionCreate(name="Name", proposal="Proposal", voters=["U0000001"])

        assert data.voters == ["U0000001"]


# =============================================================================
# Decision Tests
# =============================================================================


class TestDecision:
    """Tests for Decision model."""

    def test_from_stored_record(self, sample_decision_data):
        decision = Decision.model_validate(sample_decision_data)

        assert decision.id == "dec123"
        assert decision.status == DecisionStatus.ACTIVE
        assert decision.deadline == datetime(2024, 3, 13, 23, 59, 59, tzinfo=UTC)
        assert decision.is_active

    def test_outcome_parsed_from_json_string(self, sample_decision_data):
        outcome = OutcomeResult(
            policy=SuccessCriteria.SUPER_MAJORITY,
            passed=True,
            reason="ok",
            vote_counts=VoteCounts(yes=7, no=1, abstain=0, total=8),
            percentage=70.0,
            required_voters_count=10,
            missing_votes=2,
        )
        sample_decision_data["status"] = "approved"
        sample_decision_data["outcome"] = json.dumps(outcome.model_dump(mode="json"))
        sample_decision_data["finalized_at"] = "2024-03-10T09:00:00+00:00"

        decision = Decision.model_validate(sample_decision_data)

        assert decision.outcome.passed is True
        assert decision.outcome.vote_counts.yes == 7
        assert decision.finalized_at.tzinfo is not None
        assert not decision.is_active

    def test_empty_outcome_string_is_none(self, sample_decision_data):
        sample_decision_data["outcome"] = ""

        assert Decision.model_validate(sample_decision_data).outcome is None


# =============================================================================
# Voter / Vote Tests
# =============================================================================


class TestVoterAndVote:
    """Tests for the per-voter records."""

    def test_voter_key(self):
        voter = Voter(decision_id="dec123", user_id="U0000001")

        assert voter.key == "dec123_U0000001"
        assert voter.required is True

    def test_vote_key_and_type(self):
        vote = Vote(
            decision_id="dec123",
            user_id="U0000001",
            vote_type="abstain",
            voted_at="2024-03-06T12:00:00Z",
        )

        assert vote.key == "dec123_U0000001"
        assert vote.vote_type == VoteType.ABSTAIN
        assert vote.voted_at.tzinfo is not None

    def test_vote_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            Vote(
                decision_id="dec123",
                user_id="U0000001",
                vote_type="maybe",
                voted_at=datetime.now(UTC),
            )
