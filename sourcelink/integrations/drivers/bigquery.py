"""Google BigQuery driver using google-cloud-bigquery."""

import asyncio
from typing import Any

from sourcelink.integrations.base import SqlIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult, RawInformationSchemaRow
from sourcelink.logging import get_logger

logger = get_logger(__name__)


class BigQueryIntegration(SqlIntegration):
    """BigQuery driver.

    Authenticates with the stored service account (``client_email`` and
    ``private_key``) or, when ``auth_type`` is ``"auto"``, with application
    default credentials. Discovery reads ``COLUMN_FIELD_PATHS`` so nested
    RECORD fields appear as ``record.child`` columns.
    """

    SOURCE_TYPE = DataSourceType.BIGQUERY
    SENSITIVE_PARAM_KEYS = ("private_key",)

    def _client(self) -> Any:
        try:
            from google.cloud import bigquery
            from google.oauth2 import service_account
        except ImportError as exc:
            raise ImportError(
                "google-cloud-bigquery is required for BigQuery data sources. "
                "Install with: pip install 'sourcelink[bigquery]'"
            ) from exc

        project_id = self.params.get("project_id")
        if self.params.get("auth_type") == "auto":
            return bigquery.Client(project=project_id)

        credentials = service_account.Credentials.from_service_account_info(
            {
                "type": "service_account",
                "project_id": project_id,
                "client_email": self.params.get("client_email"),
                "private_key": self.params.get("private_key"),
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        )
        return bigquery.Client(project=project_id, credentials=credentials)

    async def _run_query_impl(self, sql: str) -> QueryResult:
        client = self._client()

        def _execute() -> QueryResult:
            rows = client.query(sql).result()
            columns = [field.name for field in rows.schema]
            return build_query_result(columns, (tuple(row.values()) for row in rows))

        return await asyncio.to_thread(_execute)

    async def _list_datasets(self, project_id: str) -> list[str]:
        client = self._client()

        def _execute() -> list[str]:
            return [dataset.dataset_id for dataset in client.list_datasets(project=project_id)]

        return await asyncio.to_thread(_execute)

    async def get_information_schema(
        self,
        scope: str | None = None,
        timeout: float | None = None,
    ) -> list[RawInformationSchemaRow]:
        """Read column field paths of every dataset in the scoped project.

        Args:
            scope: Project id, defaults to the ``project_id`` param
            timeout: Maximum seconds to wait for each backend call

        """
        project_id = scope or self.params.get("project_id")
        if not project_id:
            return []

        datasets = await self._with_timeout(self._list_datasets(project_id), timeout)
        if not datasets:
            logger.info("No BigQuery datasets found", project_id=project_id, **self._log_context())
            return []

        query = "\nUNION ALL\n".join(
            "SELECT table_catalog, table_schema, table_name, column_name, field_path, data_type\n"
            f"FROM `{project_id}.{dataset}.INFORMATION_SCHEMA.COLUMN_FIELD_PATHS`"
            for dataset in datasets
        )
        result = await self.run_query(query, timeout=timeout)
        return [{str(key).lower(): value for key, value in row.items()} for row in result["rows"]]  # type: ignore[misc]
