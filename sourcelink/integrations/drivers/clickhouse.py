"""ClickHouse driver using clickhouse-driver's native protocol client."""

import asyncio

from sourcelink.integrations.base import SqlIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult


class ClickHouseIntegration(SqlIntegration):
    SOURCE_TYPE = DataSourceType.CLICKHOUSE
    SENSITIVE_PARAM_KEYS = ("password",)
    SYSTEM_SCHEMAS = ("INFORMATION_SCHEMA", "information_schema", "system")

    async def _run_query_impl(self, sql: str) -> QueryResult:
        try:
            from clickhouse_driver import Client
        except ImportError as exc:
            raise ImportError(
                "clickhouse-driver is required for ClickHouse data sources. "
                "Install with: pip install 'sourcelink[clickhouse]'"
            ) from exc

        def _execute() -> QueryResult:
            client = Client(
                host=self.params.get("host", "localhost"),
                port=int(self.params.get("port") or 9000),
                user=self.params.get("username") or "default",
                password=self.params.get("password") or "",
                database=self.params.get("database") or "default",
                secure=bool(self.params.get("secure", False)),
            )
            try:
                records, column_types = client.execute(sql, with_column_types=True)
                return build_query_result([name for name, _ in column_types], records)
            finally:
                client.disconnect()

        return await asyncio.to_thread(_execute)

    def _information_schema_query(self, scope: str | None) -> str:
        database = str(self.params.get("database") or "default").replace("'", "''")
        return (
            "SELECT table_catalog, table_schema, table_name, column_name, data_type\n"
            "FROM information_schema.columns\n"
            f"WHERE table_schema = '{database}'\n"
            "ORDER BY table_name, ordinal_position"
        )
