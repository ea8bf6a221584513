"""
Consensus Repositories

Persistence for decisions, voter snapshots and votes.
"""

from consensus.repositories.base import ConsensusStore
from consensus.repositories.decision_repository import Neo4jDecisionRepository
from consensus.repositories.memory import InMemoryConsensusStore

__all__ = [
    "ConsensusStore",
    "InMemoryConsensusStore",
    "Neo4jDecisionRepository",
]
