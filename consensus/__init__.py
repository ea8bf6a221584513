"""
Consensus Engine - Structured Group Decisions

Voter-set resolution, idempotent vote recording, threshold-policy outcome
calculation, deadlock detection and exactly-once finalization for
group decisions.
"""

__version__ = "1.0.0"

from consensus.config import settings

__all__ = ["settings", "__version__"]
