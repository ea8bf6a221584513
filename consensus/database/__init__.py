"""
Consensus Database Layer

Neo4j integration for decisions, voter snapshots and votes.
"""

from consensus.database.client import Neo4jClient
from consensus.database.schema import SchemaManager

__all__ = [
    "Neo4jClient",
    "SchemaManager",
]
