"""
Schema Manager Tests
"""

from unittest.mock import AsyncMock

import pytest
from neo4j.exceptions import ClientError

from consensus.database.schema import CONSTRAINTS, INDEXES, SchemaManager


class TestSchemaManager:
    """Tests for SchemaManager.setup_all."""

    @pytest.mark.asyncio
    async def test_creates_all_elements(self, mock_db_client):
        results = await SchemaManager(mock_db_client).setup_all()

        assert all(results.values())
        assert set(results) == {name for name, _ in CONSTRAINTS + INDEXES}
        statements = [call.args[0] for call in mock_db_client.execute.call_args_list]
        assert all("IF NOT EXISTS" in s for s in statements)
        assert any("REQUIRE v.key IS UNIQUE" in s and "(v:Vote)" in s for s in statements)

    @pytest.mark.asyncio
    async def test_failure_reported_and_others_continue(self, mock_db_client):
        async def execute(statement, *args):
            if "decision_status_idx" in statement:
                raise ClientError("index failed")
            return []

        mock_db_client.execute = AsyncMock(side_effect=execute)

        results = await SchemaManager(mock_db_client).setup_all()

        assert results["decision_status_idx"] is False
        assert results["vote_key_unique"] is True
