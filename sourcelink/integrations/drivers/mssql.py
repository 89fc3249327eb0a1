"""Microsoft SQL Server driver using pymssql."""

import asyncio
from typing import Any

from sourcelink.integrations.base import SqlIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult


class MssqlIntegration(SqlIntegration):
    """SQL Server driver.

    pymssql is blocking, so every call runs in a worker thread.
    """

    SOURCE_TYPE = DataSourceType.MSSQL
    SENSITIVE_PARAM_KEYS = ("password",)
    SYSTEM_SCHEMAS = ("INFORMATION_SCHEMA", "sys")

    def _select_sample_rows(self, table: str, limit: int) -> str:
        return f"SELECT TOP {limit} * FROM {table}"

    async def _run_query_impl(self, sql: str) -> QueryResult:
        try:
            import pymssql
        except ImportError as exc:
            raise ImportError(
                "pymssql is required for SQL Server data sources. Install with: pip install 'sourcelink[mssql]'"
            ) from exc

        def _execute() -> QueryResult:
            conn = pymssql.connect(
                server=self.params.get("server"),
                port=str(self.params.get("port") or 1433),
                user=self.params.get("user"),
                password=self.params.get("password"),
                database=self.params.get("database"),
                timeout=int(self.params.get("request_timeout_seconds") or 0),
            )
            try:
                cursor = conn.cursor()
                cursor.execute(sql)
                records: list[Any] = cursor.fetchall() if cursor.description else []
                columns = [desc[0] for desc in cursor.description or ()]
                return build_query_result(columns, records)
            finally:
                conn.close()

        return await asyncio.to_thread(_execute)
