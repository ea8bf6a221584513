"""
Decision Repository

Neo4j-backed store for decisions, their voter snapshots and votes.

Graph shape:
    (:Voter {key})-[:ELIGIBLE_FOR]->(:Decision {id})
    (:Vote {key})-[:CAST_ON]->(:Decision {id})

Every mutation is a single Cypher statement, so each runs in its own
transaction: decision creation writes the decision and all voters together,
vote upserts are MERGE on the compound key, and finalization is a
conditional SET on ``d.status``.

Neo4j reads at read-committed isolation, so a status check in a WHERE clause
can see a value another transaction is about to overwrite. Guarded writes
therefore take the decision's write lock first (LOCK_DECISION) and only
then test the status.
"""

import json
from datetime import datetime
from typing import Any

from neo4j.exceptions import ConstraintError, DriverError, Neo4jError

from consensus.database.client import Neo4jClient
from consensus.errors import DependencyError
from consensus.models.base import DecisionStatus, compound_key
from consensus.models.decision import Decision, OutcomeResult, Vote, Voter
from consensus.repositories.base import ConsensusStore

# A throwaway write acquires the node write lock, held until commit.
LOCK_DECISION = """
        MATCH (d:Decision {id: $decision_id})
        SET d._lock = true
        REMOVE d._lock
"""


class Neo4jDecisionRepository(ConsensusStore):
    """
    Repository for decision persistence.

    Handles:
    - Atomic decision + voter snapshot creation
    - Last-write-wins vote upserts while a decision is active
    - Compare-and-swap status transitions
    """

    def __init__(self, client: Neo4jClient):
        super().__init__()
        self.client = client

    async def _run_single(
        self, operation: str, query: str, params: dict[str, Any]
    ) -> dict[str, Any] | None:
        try:
            return await self.client.execute_single(query, params, operation=operation)
        except ConstraintError:
            raise
        except (Neo4jError, DriverError) as e:
            self.logger.error("store_operation_failed", operation=operation, error=str(e))
            raise DependencyError(f"Store operation {operation} failed: {e}", operation=operation) from e

    async def _run(
        self, operation: str, query: str, params: dict[str, Any]
    ) -> list[dict[str, Any]]:
        try:
            return await self.client.execute(query, params, operation=operation)
        except (Neo4jError, DriverError) as e:
            self.logger.error("store_operation_failed", operation=operation, error=str(e))
            raise DependencyError(f"Store operation {operation} failed: {e}", operation=operation) from e

    def _to_decision(self, record: dict[str, Any]) -> Decision:
        return Decision.model_validate(record)

    async def create_decision(self, decision: Decision, voters: list[Voter]) -> Decision:
        """
        Create a decision and its voter snapshot in one statement.

        Raises:
            ValueError: A decision with this id already exists
            DependencyError: The store failed
        """
        now = self._now().isoformat()

        query = """
        CREATE (d:Decision {
            id: $id,
            name: $name,
            proposal: $proposal,
            success_criteria: $success_criteria,
            channel_id: $channel_id,
            quorum: $quorum,
            creator_id: $creator_id,
            deadline: $deadline,
            status: $status,
            outcome: null,
            finalized_at: null,
            finalization_reason: null,
            created_at: $created_at,
            updated_at: $updated_at
        })
        WITH d
        UNWIND $voters AS voter
        CREATE (v:Voter {
            key: voter.key,
            decision_id: $id,
            user_id: voter.user_id,
            required: voter.required,
            created_at: $now
        })-[:ELIGIBLE_FOR]->(d)
        WITH d, count(v) AS voter_count
        RETURN d {.*} AS entity, voter_count
        """

        params = {
            "id": decision.id,
            "name": decision.name,
            "proposal": decision.proposal,
            "success_criteria": decision.success_criteria,
            "channel_id": decision.channel_id,
            "quorum": decision.quorum,
            "creator_id": decision.creator_id,
            "deadline": decision.deadline.isoformat(),
            "status": decision.status,
            "created_at": decision.created_at.isoformat(),
            "updated_at": decision.updated_at.isoformat(),
            "now": now,
            "voters": [
                {"key": v.key, "user_id": v.user_id, "required": v.required}
                for v in voters
            ],
        }

        try:
            result = await self._run_single("create_decision", query, params)
        except ConstraintError as e:
            raise ValueError(f"Decision {decision.id} already exists") from e

        # UNWIND over an empty list yields no rows
        if not voters:
            result = await self._run_single(
                "create_decision",
                "MATCH (d:Decision {id: $id}) RETURN d {.*} AS entity",
                {"id": decision.id},
            )

        if not result or not result.get("entity"):
            raise DependencyError(
                f"Store did not confirm creation of decision {decision.id}",
                operation="create_decision",
            )

        self.logger.info(
            "decision_stored",
            decision_id=decision.id,
            voter_count=len(voters),
        )
        return self._to_decision(result["entity"])

    async def get_decision(self, decision_id: str) -> Decision | None:
        query = """
        MATCH (d:Decision {id: $id})
        RETURN d {.*} AS entity
        """
        result = await self._run_single("get_decision", query, {"id": decision_id})
        if result and result.get("entity"):
            return self._to_decision(result["entity"])
        return None

    async def list_active_decisions(self) -> list[Decision]:
        query = """
        MATCH (d:Decision)
        WHERE d.status = 'active'
        RETURN d {.*} AS entity
        ORDER BY d.deadline ASC
        """
        results = await self._run("list_active_decisions", query, {})
        return [self._to_decision(r["entity"]) for r in results if r.get("entity")]

    async def get_voters(self, decision_id: str) -> list[Voter]:
        query = """
        MATCH (v:Voter)-[:ELIGIBLE_FOR]->(d:Decision {id: $decision_id})
        RETURN v {.*} AS voter
        ORDER BY v.user_id
        """
        results = await self._run("get_voters", query, {"decision_id": decision_id})
        return [Voter.model_validate(r["voter"]) for r in results if r.get("voter")]

    async def is_voter(self, decision_id: str, user_id: str) -> bool:
        query = """
        MATCH (v:Voter {key: $key})
        RETURN count(v) > 0 AS eligible
        """
        result = await self._run_single(
            "is_voter",
            query,
            {"key": compound_key(decision_id, user_id)},
        )
        return bool(result and result.get("eligible"))

    async def get_votes(self, decision_id: str) -> list[Vote]:
        query = """
        MATCH (v:Vote)-[:CAST_ON]->(d:Decision {id: $decision_id})
        RETURN v {.*} AS vote
        ORDER BY v.voted_at ASC
        """
        results = await self._run("get_votes", query, {"decision_id": decision_id})
        return [Vote.model_validate(r["vote"]) for r in results if r.get("vote")]

    async def upsert_vote(self, vote: Vote) -> Vote | None:
        """
        Replace the vote under its compound key.

        The decision is locked before its status is read, so a vote and a
        concurrent finalization serialize and a vote can never land on a
        finalized decision.
        """
        query = LOCK_DECISION + """
        WITH d
        WHERE d.status = 'active'
        MERGE (v:Vote {key: $key})
        SET v = $props
        MERGE (v)-[:CAST_ON]->(d)
        RETURN v {.*} AS vote
        """

        props = {
            "key": vote.key,
            "decision_id": vote.decision_id,
            "user_id": vote.user_id,
            "vote_type": vote.vote_type,
            "voted_at": vote.voted_at.isoformat(),
        }

        result = await self._run_single(
            "upsert_vote",
            query,
            {"decision_id": vote.decision_id, "key": vote.key, "props": props},
        )

        if result and result.get("vote"):
            self.logger.debug(
                "vote_stored",
                decision_id=vote.decision_id,
                user_id=vote.user_id,
                vote_type=vote.vote_type,
            )
            return Vote.model_validate(result["vote"])
        return None

    async def transition_status(
        self,
        decision_id: str,
        expected_status: DecisionStatus,
        new_status: DecisionStatus,
        outcome: OutcomeResult,
        finalized_at: datetime,
        reason: str,
    ) -> Decision | None:
        """
        Compare-and-swap the decision status.

        The status is read only after the decision's write lock is held. A
        second finalizer blocks on the lock, then sees the first one's
        committed status and matches nothing.
        """
        query = LOCK_DECISION + """
        WITH d
        WHERE d.status = $expected_status
        SET
            d.status = $new_status,
            d.outcome = $outcome,
            d.finalized_at = $finalized_at,
            d.finalization_reason = $reason,
            d.updated_at = $finalized_at
        RETURN d {.*} AS entity
        """

        result = await self._run_single(
            "transition_status",
            query,
            {
                "decision_id": decision_id,
                "expected_status": DecisionStatus(expected_status).value,
                "new_status": DecisionStatus(new_status).value,
                "outcome": json.dumps(outcome.model_dump(mode="json")),
                "finalized_at": finalized_at.isoformat(),
                "reason": reason,
            },
        )

        if result and result.get("entity"):
            self.logger.info(
                "decision_status_changed",
                decision_id=decision_id,
                from_status=DecisionStatus(expected_status).value,
                to_status=DecisionStatus(new_status).value,
            )
            return self._to_decision(result["entity"])
        return None
