"""
Neo4j Schema Manager

Uniqueness constraints that back the engine's single-key guarantees:
one Decision per id, one Voter and one Vote per (decision_id, user_id).
"""

import structlog
from neo4j.exceptions import ClientError

from consensus.database.client import Neo4jClient

logger = structlog.get_logger(__name__)


CONSTRAINTS: list[tuple[str, str]] = [
    (
        "decision_id_unique",
        "CREATE CONSTRAINT decision_id_unique IF NOT EXISTS "
        "FOR (d:Decision) REQUIRE d.id IS UNIQUE",
    ),
    (
        "voter_key_unique",
        "CREATE CONSTRAINT voter_key_unique IF NOT EXISTS "
        "FOR (v:Voter) REQUIRE v.key IS UNIQUE",
    ),
    (
        "vote_key_unique",
        "CREATE CONSTRAINT vote_key_unique IF NOT EXISTS "
        "FOR (v:Vote) REQUIRE v.key IS UNIQUE",
    ),
]

INDEXES: list[tuple[str, str]] = [
    (
        "decision_status_idx",
        "CREATE INDEX decision_status_idx IF NOT EXISTS "
        "FOR (d:Decision) ON (d.status)",
    ),
    (
        "vote_decision_idx",
        "CREATE INDEX vote_decision_idx IF NOT EXISTS "
        "FOR (v:Vote) ON (v.decision_id)",
    ),
    (
        "voter_decision_idx",
        "CREATE INDEX voter_decision_idx IF NOT EXISTS "
        "FOR (v:Voter) ON (v.decision_id)",
    ),
]


class SchemaManager:
    """
    Creates the constraints and indexes the engine relies on.

    All statements use IF NOT EXISTS, so ``setup_all`` can be re-run to
    retry anything that failed.
    """

    def __init__(self, client: Neo4jClient):
        self.client = client

    async def setup_all(self) -> dict[str, bool]:
        """
        Set up all schema elements.

        Returns:
            Dict of schema element names to success status
        """
        results: dict[str, bool] = {}
        for name, statement in CONSTRAINTS + INDEXES:
            try:
                await self.client.execute(statement)
                results[name] = True
                logger.debug("schema_element_created", name=name)
            except ClientError as e:
                results[name] = False
                logger.error("schema_element_failed", name=name, error=str(e))

        logger.info(
            "schema_setup_complete",
            created=sum(results.values()),
            failed=len(results) - sum(results.values()),
        )
        return results
