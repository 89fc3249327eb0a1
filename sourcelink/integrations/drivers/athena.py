"""Amazon Athena driver using boto3."""

import asyncio
from typing import Any

from sourcelink.config import settings
from sourcelink.integrations.base import SqlIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult
from sourcelink.logging import get_logger

logger = get_logger(__name__)

TERMINAL_STATES = frozenset({"SUCCEEDED", "FAILED", "CANCELLED"})


class AthenaQueryError(RuntimeError):
    """Athena reported a failed or cancelled query execution."""


class AthenaIntegration(SqlIntegration):
    """Athena driver.

    Athena queries are asynchronous on the AWS side: the driver starts an
    execution, polls its state every ``ATHENA_POLL_INTERVAL_SECONDS`` and
    pages through the results once it has succeeded.
    """

    SOURCE_TYPE = DataSourceType.ATHENA
    SENSITIVE_PARAM_KEYS = ("secret_access_key",)

    def _client(self) -> Any:
        try:
            import boto3
        except ImportError as exc:
            raise ImportError(
                "boto3 is required for Athena data sources. Install with: pip install 'sourcelink[athena]'"
            ) from exc

        kwargs: dict[str, Any] = {"region_name": self.params.get("region")}
        if self.params.get("auth_type") != "auto":
            kwargs["aws_access_key_id"] = self.params.get("access_key_id")
            kwargs["aws_secret_access_key"] = self.params.get("secret_access_key")
        return boto3.client("athena", **kwargs)

    def _start_query(self, client: Any, sql: str) -> str:
        request: dict[str, Any] = {
            "QueryString": sql,
            "QueryExecutionContext": {
                "Catalog": self.params.get("catalog") or "AwsDataCatalog",
            },
            "ResultConfiguration": {"OutputLocation": self.params.get("bucket_uri")},
        }
        if self.params.get("database"):
            request["QueryExecutionContext"]["Database"] = self.params["database"]
        if self.params.get("workgroup"):
            request["WorkGroup"] = self.params["workgroup"]
        return client.start_query_execution(**request)["QueryExecutionId"]

    @staticmethod
    def _fetch_results(client: Any, execution_id: str, has_header_row: bool) -> QueryResult:
        paginator = client.get_paginator("get_query_results")
        columns: list[str] = []
        records: list[list[Any]] = []
        for page_number, page in enumerate(paginator.paginate(QueryExecutionId=execution_id)):
            result_set = page["ResultSet"]
            if not columns:
                columns = [column["Name"] for column in result_set["ResultSetMetadata"]["ColumnInfo"]]
            rows = result_set["Rows"]
            # Only the first page of a DML result starts with the column names
            if page_number == 0 and has_header_row:
                rows = rows[1:]
            for row in rows:
                records.append([datum.get("VarCharValue") for datum in row["Data"]])

        return build_query_result(columns, records)

    async def _run_query_impl(self, sql: str) -> QueryResult:
        client = self._client()
        execution_id = await asyncio.to_thread(self._start_query, client, sql)
        logger.debug("Athena query started", execution_id=execution_id, **self._log_context())

        try:
            while True:
                response = await asyncio.to_thread(client.get_query_execution, QueryExecutionId=execution_id)
                status = response["QueryExecution"]["Status"]
                if status["State"] in TERMINAL_STATES:
                    break
                await asyncio.sleep(settings.ATHENA_POLL_INTERVAL_SECONDS)
        except asyncio.CancelledError:
            logger.warning("Stopping cancelled Athena query", execution_id=execution_id, **self._log_context())
            await asyncio.to_thread(client.stop_query_execution, QueryExecutionId=execution_id)
            raise

        if status["State"] != "SUCCEEDED":
            raise AthenaQueryError(status.get("StateChangeReason") or f"Athena query {status['State'].lower()}")

        has_header_row = response["QueryExecution"].get("StatementType") == "DML"
        return await asyncio.to_thread(self._fetch_results, client, execution_id, has_header_row)
