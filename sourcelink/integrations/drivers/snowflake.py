"""Snowflake driver using snowflake-connector-python."""

import asyncio

from sourcelink.integrations.base import SqlIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult
from sourcelink.logging import get_logger

logger = get_logger(__name__)


class SnowflakeIntegration(SqlIntegration):
    """Snowflake driver.

    Information schema is read per database, so discovery is scoped to the
    configured ``database`` param.
    """

    SOURCE_TYPE = DataSourceType.SNOWFLAKE
    SENSITIVE_PARAM_KEYS = ("password",)
    SYSTEM_SCHEMAS = ("INFORMATION_SCHEMA",)

    async def _run_query_impl(self, sql: str) -> QueryResult:
        try:
            import snowflake.connector
        except ImportError as exc:
            raise ImportError(
                "snowflake-connector-python is required for Snowflake data sources. "
                "Install with: pip install 'sourcelink[snowflake]'"
            ) from exc

        def _execute() -> QueryResult:
            conn = snowflake.connector.connect(
                account=self.params.get("account"),
                user=self.params.get("username"),
                password=self.params.get("password"),
                warehouse=self.params.get("warehouse"),
                database=self.params.get("database"),
                schema=self.params.get("schema"),
                role=self.params.get("role"),
            )
            try:
                cursor = conn.cursor()
                cursor.execute(sql)
                records = cursor.fetchall()
                columns = [desc[0] for desc in cursor.description or ()]
                return build_query_result(columns, records)
            finally:
                conn.close()

        logger.debug("Running Snowflake query", extra={"account": self.params.get("account")})
        return await asyncio.to_thread(_execute)
