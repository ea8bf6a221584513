"""
Consensus Engine Errors

Typed failures surfaced to callers. Every error carries a stable ``code`` so
presentation layers can tell an ineligible voter from a finalized decision
from a system failure, each of which calls for a different corrective action.
"""

from typing import Any


class ConsensusError(Exception):
    """Base class for all engine errors."""

    code = "consensus_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for API/notification layers."""
        return {"error": self.code, "message": self.message, "details": self.details}


class ValidationError(ConsensusError):
    """Input rejected: malformed vote type, oversized voter set, bad references."""

    code = "validation_error"


class NotFoundError(ConsensusError):
    """Referenced decision does not exist."""

    code = "not_found"


class IneligibleVoterError(ValidationError, NotFoundError):
    """User is not in the decision's required voter set."""

    code = "ineligible_voter"


class ConflictError(ConsensusError):
    """Operation conflicts with the decision's lifecycle state."""

    code = "decision_finalized"


class DependencyError(ConsensusError):
    """An external collaborator (directory, store) failed."""

    code = "dependency_failure"


__all__ = [
    "ConsensusError",
    "ValidationError",
    "NotFoundError",
    "IneligibleVoterError",
    "ConflictError",
    "DependencyError",
]
