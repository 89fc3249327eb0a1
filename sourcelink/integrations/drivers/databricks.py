"""Databricks SQL warehouse driver using databricks-sql-connector."""

import asyncio

from sourcelink.integrations.base import SqlIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult


class DatabricksIntegration(SqlIntegration):
    """Databricks driver.

    Discovery reads the Unity Catalog ``system.information_schema`` so that
    every catalog the token can see is included.
    """

    SOURCE_TYPE = DataSourceType.DATABRICKS
    SENSITIVE_PARAM_KEYS = ("token",)

    async def _run_query_impl(self, sql: str) -> QueryResult:
        try:
            from databricks import sql as databricks_sql
        except ImportError as exc:
            raise ImportError(
                "databricks-sql-connector is required for Databricks data sources. "
                "Install with: pip install 'sourcelink[databricks]'"
            ) from exc

        def _execute() -> QueryResult:
            with databricks_sql.connect(
                server_hostname=self.params.get("host"),
                http_path=self.params.get("path"),
                access_token=self.params.get("token"),
            ) as conn:
                with conn.cursor() as cursor:
                    cursor.execute(sql)
                    records = cursor.fetchall()
                    columns = [desc[0] for desc in cursor.description or ()]
                    return build_query_result(columns, records)

        return await asyncio.to_thread(_execute)

    def _information_schema_query(self, scope: str | None) -> str:
        return (
            "SELECT table_catalog, table_schema, table_name, column_name, data_type\n"
            "FROM system.information_schema.columns\n"
            "WHERE table_schema <> 'information_schema' AND table_catalog <> 'system'\n"
            "ORDER BY table_catalog, table_schema, table_name, ordinal_position"
        )
