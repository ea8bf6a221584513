"""
Neo4j Client Tests
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from neo4j.exceptions import ServiceUnavailable

from consensus.database.client import Neo4jClient


class TestNeo4jClient:
    """Tests for Neo4jClient without a live database."""

    def test_defaults_from_settings(self):
        client = Neo4jClient()

        assert client._uri == "bolt://localhost:7687"
        assert client.is_connected is False

    def test_explicit_arguments(self):
        client = Neo4jClient(uri="bolt://db:7687", user="u", password="p", database="votes")

        assert client._uri == "bolt://db:7687"
        assert client._database == "votes"

    def test_session_requires_connection(self):
        with pytest.raises(RuntimeError, match="not connected"):
            Neo4jClient()._get_driver()

    @pytest.mark.asyncio
    async def test_connect_and_close(self):
        driver = MagicMock()
        driver.verify_connectivity = AsyncMock()
        driver.close = AsyncMock()

        with patch(
            "consensus.database.client.AsyncGraphDatabase.driver", return_value=driver
        ):
            client = Neo4jClient()
            await client.connect()

            assert client.is_connected is True

            await client.close()

        assert client.is_connected is False
        driver.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure_closes_driver(self):
        driver = MagicMock()
        driver.verify_connectivity = AsyncMock(side_effect=OSError("refused"))
        driver.close = AsyncMock()

        with patch(
            "consensus.database.client.AsyncGraphDatabase.driver", return_value=driver
        ):
            client = Neo4jClient()
            with pytest.raises(OSError):
                await client.connect()

        assert client.is_connected is False
        driver.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_health_check_unhealthy(self):
        client = Neo4jClient()
        client.execute_single = AsyncMock(side_effect=RuntimeError("down"))

        result = await client.health_check()

        assert result["status"] == "unhealthy"
        assert "down" in result["error"]


def connected_client(run_side_effect, **kwargs) -> tuple[Neo4jClient, MagicMock]:
    """Client wired to a mocked driver whose session.run follows ``run_side_effect``."""
    session = MagicMock()
    session.run = AsyncMock(side_effect=run_side_effect)
    session_cm = MagicMock()
    session_cm.__aenter__ = AsyncMock(return_value=session)
    session_cm.__aexit__ = AsyncMock(return_value=False)

    driver = MagicMock()
    driver.session = MagicMock(return_value=session_cm)

    client = Neo4jClient(retry_max_wait=0, **kwargs)
    client._driver = driver
    return client, session


def single_result(record):
    result = MagicMock()
    result.single = AsyncMock(return_value=record)
    return result


class TestStatementRetry:
    """Transient store failures are retried per statement."""

    @pytest.mark.asyncio
    async def test_execute_single_returns_record(self):
        client, session = connected_client([single_result({"eligible": True})])

        record = await client.execute_single("RETURN true AS eligible", {}, operation="is_voter")

        assert record == {"eligible": True}
        assert session.run.await_count == 1

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self):
        client, session = connected_client(
            [ServiceUnavailable("leader switch"), single_result({"entity": {"id": "dec1"}})]
        )

        record = await client.execute_single("MATCH (d) RETURN d", operation="transition_status")

        assert record == {"entity": {"id": "dec1"}}
        assert session.run.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_configured_attempts(self):
        client, session = connected_client(ServiceUnavailable("down"), retry_attempts=2)

        with pytest.raises(ServiceUnavailable):
            await client.execute_single("RETURN 1", operation="get_decision")

        assert session.run.await_count == 2

    @pytest.mark.asyncio
    async def test_non_transient_failure_not_retried(self):
        client, session = connected_client(ValueError("bad parameters"))

        with pytest.raises(ValueError):
            await client.execute("RETURN $x", {"x": object()})

        assert session.run.await_count == 1

    @pytest.mark.asyncio
    async def test_health_check_healthy(self):
        client, _ = connected_client(
            [single_result({"name": "Neo4j Kernel", "versions": ["5.20"], "edition": "community"})]
        )

        result = await client.health_check()

        assert result["status"] == "healthy"
        assert result["details"]["edition"] == "community"
