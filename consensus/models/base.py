"""
Base Models and Common Types

Foundation classes for all consensus models including enums,
mixins, and base model configuration.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def convert_neo4j_datetime(value: Any) -> datetime:
    """
    Convert a stored timestamp to a timezone-aware Python datetime.

    Accepts native datetimes (naive values are taken as UTC), Neo4j
    DateTime objects and ISO-8601 strings.
    """
    if value is None:
        return datetime.now(UTC)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    # Handle Neo4j DateTime object
    if hasattr(value, "to_native"):
        return convert_neo4j_datetime(value.to_native())
    if isinstance(value, str):
        return convert_neo4j_datetime(datetime.fromisoformat(value.replace("Z", "+00:00")))
    return value


class ConsensusModel(BaseModel):
    """Base model for all consensus entities with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=True,
    )


class TimestampMixin(BaseModel):
    """Mixin providing created_at and updated_at fields."""

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def convert_datetime(cls, v: Any) -> datetime:
        """Convert Neo4j DateTime to Python datetime."""
        return convert_neo4j_datetime(v)


class DecisionStatus(str, Enum):
    """Lifecycle states of a decision."""

    ACTIVE = "active"        # Open for voting
    APPROVED = "approved"    # Terminal: outcome passed
    REJECTED = "rejected"    # Terminal: outcome failed


class SuccessCriteria(str, Enum):
    """Threshold policy used to compute a decision's outcome."""

    SIMPLE_MAJORITY = "simple_majority"  # yes / votes cast > 50%
    SUPER_MAJORITY = "super_majority"    # yes / required voters >= 66%
    UNANIMOUS = "unanimous"              # no "no" votes and quorum met


class VoteType(str, Enum):
    """Vote options."""

    YES = "yes"
    NO = "no"
    ABSTAIN = "abstain"

    @classmethod
    def from_string(cls, value: str) -> "VoteType":
        """
        Safe conversion from an input string to a VoteType.

        Matching is case-insensitive and accepts the common aliases
        approve/for (yes) and reject/against (no).

        Raises:
            ValueError: If value is not a valid vote type
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"VoteType must be string, got {type(value)}")

        normalized = value.strip().lower()
        alias_map = {
            "approve": "yes",
            "for": "yes",
            "reject": "no",
            "against": "no",
        }
        canonical = alias_map.get(normalized, normalized)

        try:
            return cls(canonical)
        except ValueError as exc:
            valid = [member.value for member in cls]
            raise ValueError(
                f"Invalid vote type '{value}'. Valid types: {valid}"
            ) from exc


def generate_id() -> str:
    """Generate a new UUID string."""
    return str(uuid4())


def compound_key(decision_id: str, user_id: str) -> str:
    """Storage key for per-voter records of a decision."""
    return f"{decision_id}_{user_id}"
