"""
Neo4j Client

Async wrapper over the Neo4j driver for the consensus store. Every statement
runs in its own auto-commit transaction. Transient failures are retried with
bounded exponential backoff, and each retry is logged under the store
operation that issued the statement.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from typing import Any

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession
from neo4j.exceptions import (
    DriverError,
    Neo4jError,
    ServiceUnavailable,
    SessionExpired,
    TransientError,
)
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from consensus.config import get_settings

logger = structlog.get_logger(__name__)


# A statement aborted while waiting on a decision lock surfaces as a
# TransientError; re-running it reads the committed status.
RETRYABLE_EXCEPTIONS = (ServiceUnavailable, SessionExpired, TransientError)


class Neo4jClient:
    """
    Connection and statement runner for the consensus store.

    ``execute`` and ``execute_single`` are the only entry points the
    repositories use; ``operation`` names the store call in retry logs.
    """

    def __init__(
        self,
        uri: str | None = None,
        user: str | None = None,
        password: str | None = None,
        database: str | None = None,
        retry_attempts: int | None = None,
        retry_max_wait: float | None = None,
    ):
        settings = get_settings()
        self._uri = uri or settings.neo4j_uri
        self._user = user or settings.neo4j_user
        self._password = password or settings.neo4j_password
        self._database = database or settings.neo4j_database
        self._retry_attempts = retry_attempts or settings.store_retry_attempts
        self._retry_max_wait = (
            retry_max_wait if retry_max_wait is not None else settings.store_retry_max_wait
        )

        self._driver: AsyncDriver | None = None

    async def connect(self) -> None:
        """Open the driver and verify the server is reachable."""
        if self._driver is not None:
            return

        settings = get_settings()
        logger.info("store_connecting", uri=self._uri, database=self._database)

        self._driver = AsyncGraphDatabase.driver(
            self._uri,
            auth=(self._user, self._password),
            max_connection_lifetime=settings.neo4j_max_connection_lifetime,
            max_connection_pool_size=settings.neo4j_max_connection_pool_size,
            connection_timeout=settings.neo4j_connection_timeout,
        )

        try:
            await self._driver.verify_connectivity()
        except Exception as e:
            logger.error("store_connect_failed", uri=self._uri, error=str(e))
            await self._driver.close()
            self._driver = None
            raise
        logger.info("store_connected", database=self._database)

    async def close(self) -> None:
        if self._driver is not None:
            await self._driver.close()
            self._driver = None
            logger.info("store_closed", database=self._database)

    @property
    def is_connected(self) -> bool:
        return self._driver is not None

    def _get_driver(self) -> AsyncDriver:
        if self._driver is None:
            raise RuntimeError("Neo4j client not connected. Call connect() first.")
        return self._driver

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._get_driver().session(database=self._database) as session:
            yield session

    def _log_retry(self, operation: str) -> Callable[[RetryCallState], None]:
        def log(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "store_statement_retry",
                operation=operation,
                attempt=retry_state.attempt_number,
                max_attempts=self._retry_attempts,
                error=str(error),
            )

        return log

    def _retrying(self, operation: str) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=0.2, min=0, max=self._retry_max_wait),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            before_sleep=self._log_retry(operation),
            reraise=True,
        )

    async def execute(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
        operation: str = "query",
    ) -> list[dict[str, Any]]:
        """Run a statement and return every record as a dict."""
        async for attempt in self._retrying(operation):
            with attempt:
                async with self._session() as session:
                    result = await session.run(query, parameters or {})
                    return [dict(record) async for record in result]
        raise AssertionError("unreachable")

    async def execute_single(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
        operation: str = "query",
    ) -> dict[str, Any] | None:
        """Run a statement and return its first record, or None."""
        async for attempt in self._retrying(operation):
            with attempt:
                async with self._session() as session:
                    result = await session.run(query, parameters or {})
                    record = await result.single()
                    return dict(record) if record else None
        raise AssertionError("unreachable")

    async def health_check(self) -> dict[str, Any]:
        try:
            result = await self.execute_single(
                "CALL dbms.components() YIELD name, versions, edition "
                "RETURN name, versions, edition LIMIT 1",
                operation="health_check",
            )
        except (Neo4jError, DriverError, RuntimeError) as e:
            logger.error("store_health_check_failed", error=str(e))
            return {"status": "unhealthy", "database": self._database, "error": str(e)}
        return {"status": "healthy", "database": self._database, "details": result or {}}
