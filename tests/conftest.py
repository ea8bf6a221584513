"""
Consensus Engine - Test Fixtures

Shared pytest fixtures for all test modules.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================

os.environ["CONSENSUS_APP_ENV"] = "testing"
os.environ.setdefault("CONSENSUS_NEO4J_URI", "bolt://localhost:7687")
os.environ.setdefault("CONSENSUS_NEO4J_PASSWORD", "testpassword")  # TEST ONLY

from consensus.models.base import SuccessCriteria  # noqa: E402
from consensus.models.decision import DecisionCreate  # noqa: E402
from consensus.repositories.memory import InMemoryConsensusStore  # noqa: E402
from consensus.services.decision_service import DecisionService  # noqa: E402
from consensus.utils.clock import FrozenClock  # noqa: E402
from tests.fakes import FakeMembershipDirectory  # noqa: E402

# Wednesday, so five business days later is the following Wednesday
FIXED_NOW = datetime(2024, 3, 6, 12, 0, tzinfo=UTC)


# =============================================================================
# Mock Database Client
# =============================================================================


@pytest.fixture
def mock_db_client():
    """Create a mock Neo4j client."""
    client = AsyncMock()
    client.execute = AsyncMock(return_value=[])
    client.execute_single = AsyncMock(return_value=None)
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client._driver = MagicMock()
    return client


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def clock():
    """Clock frozen at a known Wednesday noon UTC."""
    return FrozenClock(FIXED_NOW)


@pytest.fixture
def store():
    return InMemoryConsensusStore()


@pytest.fixture
def directory():
    return FakeMembershipDirectory(
        groups={
            "S0ENGINEERS": [["U0000001", "U0000002"], [], ["U0000003"]],
            "S0DESIGNERS": [["U0000003", "U0000004"]],
        },
        channels={
            "C0GENERAL": [
                ["U0000001", "U0000BOT1", "USLACKBOT"],
                ["U0000005"],
            ],
        },
        bots={"U0000BOT1"},
        handles={"eng": "S0ENGINEERS"},
    )


@pytest.fixture
def service(store, directory, clock):
    return DecisionService(store, directory, clock)


@pytest.fixture
def make_decision(service):
    """Factory creating a decision through the service."""

    async def _make(
        voters: str | list[str] = "U0000001 U0000002 U0000003",
        criteria: SuccessCriteria = SuccessCriteria.SIMPLE_MAJORITY,
        **kwargs,
    ):
        data = DecisionCreate(
            name=kwargs.pop("name", "Adopt trunk-based development"),
            proposal=kwargs.pop("proposal", "Merge to main daily behind flags"),
            success_criteria=criteria,
            voters=voters,
            **kwargs,
        )
        return await service.create_decision(data, creator_id="U0CREATOR")

    return _make
