"""
In-Memory Store Tests
"""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from consensus.models.base import DecisionStatus
from consensus.models.decision import Decision, OutcomeResult, Vote, VoteCounts, Voter
from consensus.repositories.memory import InMemoryConsensusStore

NOW = datetime(2024, 3, 6, 12, 0, tzinfo=UTC)


def make_decision(decision_id: str = "dec1") -> Decision:
    return Decision(
        id=decision_id,
        name="Name",
        proposal="Proposal",
        creator_id="U0CREATOR",
        deadline=NOW + timedelta(days=5),
    )


def make_outcome(passed: bool = True) -> OutcomeResult:
    return OutcomeResult(
        policy="simple_majority",
        passed=passed,
        reason="test",
        vote_counts=VoteCounts(yes=1, total=1),
    )


@pytest.fixture
def store():
    return InMemoryConsensusStore()


class TestInMemoryConsensusStore:
    """Tests for InMemoryConsensusStore."""

    @pytest.mark.asyncio
    async def test_create_and_read(self, store):
        await store.create_decision(make_decision(), [Voter(decision_id="dec1", user_id="U1")])

        decision = await store.get_decision("dec1")
        assert decision.name == "Name"
        assert [v.user_id for v in await store.get_voters("dec1")] == ["U1"]
        assert await store.is_voter("dec1", "U1") is True
        assert await store.is_voter("dec1", "U2") is False

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, store):
        await store.create_decision(make_decision(), [])

        with pytest.raises(ValueError):
            await store.create_decision(make_decision(), [])

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store):
        await store.create_decision(make_decision(), [])

        copy = await store.get_decision("dec1")
        copy.name = "Changed"

        assert (await store.get_decision("dec1")).name == "Name"

    @pytest.mark.asyncio
    async def test_missing_decision(self, store):
        assert await store.get_decision("missing") is None
        assert await store.get_voters("missing") == []
        assert await store.get_votes("missing") == []

    @pytest.mark.asyncio
    async def test_upsert_replaces(self, store):
        await store.create_decision(make_decision(), [Voter(decision_id="dec1", user_id="U1")])

        await store.upsert_vote(Vote(decision_id="dec1", user_id="U1", vote_type="yes", voted_at=NOW))
        await store.upsert_vote(Vote(decision_id="dec1", user_id="U1", vote_type="no", voted_at=NOW))

        votes = await store.get_votes("dec1")
        assert len(votes) == 1
        assert votes[0].vote_type == "no"

    @pytest.mark.asyncio
    async def test_upsert_refused_when_not_active(self, store):
        await store.create_decision(make_decision(), [Voter(decision_id="dec1", user_id="U1")])
        await store.transition_status(
            "dec1", DecisionStatus.ACTIVE, DecisionStatus.APPROVED, make_outcome(), NOW, "forced"
        )

        stored = await store.upsert_vote(
            Vote(decision_id="dec1", user_id="U1", vote_type="no", voted_at=NOW)
        )

        assert stored is None
        assert await store.get_votes("dec1") == []

    @pytest.mark.asyncio
    async def test_upsert_refused_for_missing_decision(self, store):
        stored = await store.upsert_vote(
            Vote(decision_id="missing", user_id="U1", vote_type="no", voted_at=NOW)
        )

        assert stored is None

    @pytest.mark.asyncio
    async def test_transition_is_compare_and_swap(self, store):
        await store.create_decision(make_decision(), [])

        first = await store.transition_status(
            "dec1", DecisionStatus.ACTIVE, DecisionStatus.APPROVED, make_outcome(), NOW, "all votes submitted"
        )
        second = await store.transition_status(
            "dec1", DecisionStatus.ACTIVE, DecisionStatus.REJECTED, make_outcome(False), NOW, "deadline reached"
        )

        assert first.status == DecisionStatus.APPROVED
        assert first.outcome.passed is True
        assert second is None
        stored = await store.get_decision("dec1")
        assert stored.status == DecisionStatus.APPROVED
        assert stored.finalization_reason == "all votes submitted"

    @pytest.mark.asyncio
    async def test_concurrent_transitions_single_winner(self, store):
        await store.create_decision(make_decision(), [])

        results = await asyncio.gather(
            *(
                store.transition_status(
                    "dec1", DecisionStatus.ACTIVE, status, make_outcome(), NOW, "race"
                )
                for status in [DecisionStatus.APPROVED, DecisionStatus.REJECTED] * 3
            )
        )

        assert sum(r is not None for r in results) == 1

    @pytest.mark.asyncio
    async def test_list_active(self, store):
        await store.create_decision(make_decision("a"), [])
        await store.create_decision(make_decision("b"), [])
        await store.transition_status(
            "a", DecisionStatus.ACTIVE, DecisionStatus.REJECTED, make_outcome(False), NOW, "forced"
        )

        assert [d.id for d in await store.list_active_decisions()] == ["b"]
