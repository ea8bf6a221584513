"""
In-Memory Store

Process-local ConsensusStore used for embedding the engine and for tests.
Records are copied on the way in and out so callers never share mutable
state with the store.
"""

import asyncio
from datetime import datetime

from consensus.models.base import DecisionStatus, compound_key
from consensus.models.decision import Decision, OutcomeResult, Vote, Voter
from consensus.repositories.base import ConsensusStore


class InMemoryConsensusStore(ConsensusStore):
    """
    Dict-backed store.

    Vote writes lock only their own (decision_id, user_id) key; status
    transitions lock only their decision. Status checks and the writes they
    guard run without an intervening await, so they cannot interleave with
    another coroutine's write.
    """

    def __init__(self) -> None:
        super().__init__()
        self._decisions: dict[str, Decision] = {}
        self._voters: dict[str, dict[str, Voter]] = {}
        self._votes: dict[str, dict[str, Vote]] = {}

        self._locks: dict[str, asyncio.Lock] = {}
        self._locks_lock = asyncio.Lock()

    async def _get_lock(self, key: str) -> asyncio.Lock:
        """Get or create a lock for a specific key."""
        async with self._locks_lock:
            if key not in self._locks:
                self._locks[key] = asyncio.Lock()
            return self._locks[key]

    async def create_decision(self, decision: Decision, voters: list[Voter]) -> Decision:
        lock = await self._get_lock(f"decision:{decision.id}")
        async with lock:
            if decision.id in self._decisions:
                raise ValueError(f"Decision {decision.id} already exists")
            self._decisions[decision.id] = decision.model_copy(deep=True)
            self._voters[decision.id] = {
                v.user_id: v.model_copy() for v in voters
            }
            self._votes[decision.id] = {}

        self.logger.info(
            "decision_stored",
            decision_id=decision.id,
            voter_count=len(voters),
        )
        return decision.model_copy(deep=True)

    async def get_decision(self, decision_id: str) -> Decision | None:
        decision = self._decisions.get(decision_id)
        return decision.model_copy(deep=True) if decision else None

    async def list_active_decisions(self) -> list[Decision]:
        return [
            d.model_copy(deep=True)
            for d in self._decisions.values()
            if d.status == DecisionStatus.ACTIVE
        ]

    async def get_voters(self, decision_id: str) -> list[Voter]:
        return [v.model_copy() for v in self._voters.get(decision_id, {}).values()]

    async def is_voter(self, decision_id: str, user_id: str) -> bool:
        return user_id in self._voters.get(decision_id, {})

    async def get_votes(self, decision_id: str) -> list[Vote]:
        return [v.model_copy() for v in self._votes.get(decision_id, {}).values()]

    async def upsert_vote(self, vote: Vote) -> Vote | None:
        lock = await self._get_lock(f"vote:{compound_key(vote.decision_id, vote.user_id)}")
        async with lock:
            decision = self._decisions.get(vote.decision_id)
            if decision is None or decision.status != DecisionStatus.ACTIVE:
                return None
            self._votes[vote.decision_id][vote.user_id] = vote.model_copy()
        return vote.model_copy()

    async def transition_status(
        self,
        decision_id: str,
        expected_status: DecisionStatus,
        new_status: DecisionStatus,
        outcome: OutcomeResult,
        finalized_at: datetime,
        reason: str,
    ) -> Decision | None:
        lock = await self._get_lock(f"decision:{decision_id}")
        async with lock:
            current = self._decisions.get(decision_id)
            if current is None or current.status != expected_status:
                return None
            updated = current.model_copy(
                update={
                    "status": new_status,
                    "outcome": outcome.model_copy(deep=True),
                    "finalized_at": finalized_at,
                    "finalization_reason": reason,
                    "updated_at": finalized_at,
                },
                deep=True,
            )
            self._decisions[decision_id] = updated
        return updated.model_copy(deep=True)
