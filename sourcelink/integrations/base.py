"""Base classes for all backend drivers."""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Iterable, Sequence
from typing import Any, TypeVar
from uuid import uuid4

from opentelemetry import trace

from sourcelink.config import settings
from sourcelink.exceptions.integration import (
    BackendExecutionError,
    ConnectionTestFailedError,
    QueryExecutionError,
    QueryTimeoutError,
)
from sourcelink.integrations.capabilities import (
    SupportsInformationSchema,
    SupportsQuery,
    SupportsTestQuery,
)
from sourcelink.integrations.information_schema import format_information_schema
from sourcelink.integrations.types import (
    DataSourceType,
    IntegrationCapability,
    IntegrationMetadata,
    QueryResult,
    RawInformationSchemaRow,
    TestQueryResult,
)
from sourcelink.logging import get_logger
from sourcelink.schemas.information_schema import Database

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")


def build_query_result(columns: Sequence[str], records: Iterable[Sequence[Any]]) -> QueryResult:
    """Zip positional records with their column names."""
    columns = [str(column) for column in columns]
    rows = [dict(zip(columns, record)) for record in records]
    return QueryResult(columns=columns, rows=rows, row_count=len(rows))


class SourceIntegration(ABC):
    """Abstract base class for all backend drivers.

    A driver is constructed for a single logical operation with already
    decrypted ``params`` and discarded afterwards. The factory stamps
    ``organization`` and ``datasource`` before handing it out.

    Concrete drivers must implement :meth:`_test_connection_impl` and may opt
    into the optional capabilities declared in
    :mod:`sourcelink.integrations.capabilities`.
    """

    SOURCE_TYPE: DataSourceType
    SENSITIVE_PARAM_KEYS: tuple[str, ...] = ()

    def __init__(self, params: dict[str, Any], settings: dict[str, Any] | None = None) -> None:
        """Initialize the driver.

        Args:
            params: Decrypted connection params
            settings: Free-form per-backend settings

        """
        self.params = dict(params)
        self.settings = dict(settings or {})
        self.organization: str | None = None
        self.datasource: str | None = None
        self._connection_id = str(uuid4())

    @property
    def source_type(self) -> str:
        return self.SOURCE_TYPE.value

    def get_sensitive_param_keys(self) -> list[str]:
        """Param keys holding secrets that must never be displayed once stored."""
        return list(self.SENSITIVE_PARAM_KEYS)

    def capabilities(self) -> set[IntegrationCapability]:
        """Optional capabilities this driver implements."""
        capabilities = set()
        if isinstance(self, SupportsQuery):
            capabilities.add(IntegrationCapability.RUN_QUERY)
        if isinstance(self, SupportsTestQuery):
            capabilities.add(IntegrationCapability.TEST_QUERY)
        if isinstance(self, SupportsInformationSchema):
            capabilities.add(IntegrationCapability.INFORMATION_SCHEMA)
        return capabilities

    def get_metadata(self) -> IntegrationMetadata:
        return IntegrationMetadata(
            source_type=self.SOURCE_TYPE,
            capabilities=sorted(self.capabilities(), key=lambda capability: capability.value),
            sensitive_param_keys=self.get_sensitive_param_keys(),
        )

    def _log_context(self) -> dict[str, Any]:
        return {
            "source_type": self.source_type,
            "datasource_id": self.datasource,
            "organization": self.organization,
            "connection_id": self._connection_id,
        }

    async def _with_timeout(self, awaitable: Awaitable[T], timeout: float | None, query: str | None = None) -> T:
        """Await ``awaitable``, bounded only when the caller supplied a timeout."""
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise QueryTimeoutError(
                f"{self.source_type} call timed out after {timeout} seconds",
                source_type=self.source_type,
                query=query[:200] if query else None,
                timeout_seconds=timeout,
            ) from e

    @abstractmethod
    async def _test_connection_impl(self) -> None:
        """Perform the minimal backend handshake.

        Raises:
            Exception: Any failure; the caller wraps it

        """

    async def test_connection(self, timeout: float | None = None) -> None:
        """Test the connection to the data source.

        Args:
            timeout: Maximum seconds to wait, ``None`` for the client's default

        Raises:
            BackendExecutionError: If the handshake fails or times out

        """
        with tracer.start_as_current_span(
            "integration.test_connection",
            attributes={"source.type": self.source_type, "datasource.id": str(self.datasource)},
        ) as span:
            try:
                await self._with_timeout(self._test_connection_impl(), timeout)
            except BackendExecutionError as e:
                span.set_attribute("connection.success", False)
                logger.error("Connection test failed", error=e.message, **self._log_context())
                raise
            except Exception as e:
                span.set_attribute("connection.success", False)
                logger.error("Connection test failed", error=str(e), **self._log_context())
                raise ConnectionTestFailedError(
                    f"{self.source_type} connection test failed: {e}",
                    source_type=self.source_type,
                ) from e

            span.set_attribute("connection.success", True)
            logger.info("Connection test succeeded", **self._log_context())


class QueryIntegration(SourceIntegration):
    """Base for drivers that can run arbitrary queries in their native language."""

    @abstractmethod
    async def _run_query_impl(self, sql: str) -> QueryResult:
        """Execute ``sql`` and return every row.

        Raises:
            Exception: Any failure; :meth:`run_query` wraps it

        """

    async def run_query(self, query: str, timeout: float | None = None) -> QueryResult:
        """Run an arbitrary query.

        Args:
            query: SQL in the backend's dialect
            timeout: Maximum seconds to wait, ``None`` for the client's default

        Returns:
            QueryResult with columns and rows

        Raises:
            QueryExecutionError: If the backend rejects or fails the query
            QueryTimeoutError: If ``timeout`` elapses

        """
        query_id = str(uuid4())

        with tracer.start_as_current_span(
            "integration.run_query",
            attributes={
                "source.type": self.source_type,
                "query.id": query_id,
                "query.length": len(query),
            },
        ) as span:
            start_time = time.perf_counter()
            try:
                result = await self._with_timeout(self._run_query_impl(query), timeout, query)
            except BackendExecutionError as e:
                logger.error("Query execution failed", query_id=query_id, error=e.message, **self._log_context())
                raise
            except Exception as e:
                logger.error("Query execution failed", query_id=query_id, error=str(e), **self._log_context())
                raise QueryExecutionError(
                    str(e),
                    source_type=self.source_type,
                    query=query[:200],
                ) from e

            execution_time = (time.perf_counter() - start_time) * 1000
            span.set_attribute("query.rows", result["row_count"])
            span.set_attribute("query.execution_time_ms", execution_time)
            logger.info(
                "Query executed successfully",
                query_id=query_id,
                row_count=result["row_count"],
                execution_time_ms=execution_time,
                **self._log_context(),
            )
            return result


class SqlIntegration(QueryIntegration):
    """Base for SQL backends.

    Implements every optional capability on top of :meth:`_run_query_impl`:
    arbitrary queries, bounded test queries and information schema discovery
    through ``information_schema.columns``.
    """

    SYSTEM_SCHEMAS: tuple[str, ...] = ("information_schema",)

    async def _test_connection_impl(self) -> None:
        await self._run_query_impl("SELECT 1")

    def _select_sample_rows(self, table: str, limit: int) -> str:
        return f"SELECT * FROM {table} LIMIT {limit}"

    def get_test_query(self, query: str) -> str:
        """Wrap a caller's raw query so that only a few sample rows come back."""
        inner = query.strip().rstrip(";")
        return f"WITH __table AS (\n{inner}\n)\n{self._select_sample_rows('__table', settings.TEST_QUERY_ROW_LIMIT)}"

    async def run_test_query(self, sql: str, timeout: float | None = None) -> TestQueryResult:
        """Execute an already bounded test query.

        Returns:
            Sample rows and wall-clock duration in milliseconds

        """
        start_time = time.perf_counter()
        result = await self.run_query(sql, timeout=timeout)
        duration = (time.perf_counter() - start_time) * 1000
        return TestQueryResult(results=result["rows"], duration=duration)

    def _information_schema_query(self, scope: str | None) -> str:
        excluded = ", ".join(f"'{schema}'" for schema in self.SYSTEM_SCHEMAS)
        return (
            "SELECT table_catalog, table_schema, table_name, column_name, data_type\n"
            "FROM information_schema.columns\n"
            f"WHERE table_schema NOT IN ({excluded})\n"
            "ORDER BY table_catalog, table_schema, table_name, ordinal_position"
        )

    async def get_information_schema(
        self,
        scope: str | None = None,
        timeout: float | None = None,
    ) -> list[RawInformationSchemaRow]:
        """Read raw column metadata from the backend.

        Args:
            scope: Backend-specific narrowing (e.g. a BigQuery project id)
            timeout: Maximum seconds to wait

        """
        result = await self.run_query(self._information_schema_query(scope), timeout=timeout)
        rows = [{str(key).lower(): value for key, value in row.items()} for row in result["rows"]]
        logger.info("Information schema fetched", column_rows=len(rows), **self._log_context())
        return rows  # type: ignore[return-value]

    def format_information_schema(
        self,
        raw: list[RawInformationSchemaRow],
        source_type: DataSourceType,
    ) -> list[Database]:
        return format_information_schema(raw, source_type)
