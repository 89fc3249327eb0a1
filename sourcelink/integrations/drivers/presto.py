"""Presto / Trino driver over the coordinator's REST statement protocol."""

from typing import Any

import httpx

from sourcelink.integrations.base import SqlIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult
from sourcelink.logging import get_logger

logger = get_logger(__name__)


class PrestoQueryError(RuntimeError):
    """The coordinator reported a failed statement."""


class PrestoIntegration(SqlIntegration):
    """Presto and Trino driver.

    A statement is POSTed to ``/v1/statement`` and the driver follows
    ``nextUri`` until the coordinator stops returning one, collecting
    ``columns`` and ``data`` on the way. ``engine`` selects the
    ``X-Presto-*`` or ``X-Trino-*`` header family.
    """

    SOURCE_TYPE = DataSourceType.PRESTO
    SENSITIVE_PARAM_KEYS = ("password",)

    transport: httpx.AsyncBaseTransport | None = None

    def _base_url(self) -> str:
        scheme = "https" if self.params.get("ssl") else "http"
        return f"{scheme}://{self.params.get('host', 'localhost')}:{int(self.params.get('port') or 8080)}"

    def _headers(self) -> dict[str, str]:
        prefix = "X-Trino" if self.params.get("engine") == "trino" else "X-Presto"
        headers = {f"{prefix}-User": str(self.params.get("username") or "sourcelink")}
        if self.params.get("catalog"):
            headers[f"{prefix}-Catalog"] = str(self.params["catalog"])
        if self.params.get("schema"):
            headers[f"{prefix}-Schema"] = str(self.params["schema"])
        return headers

    def _auth(self) -> httpx.BasicAuth | None:
        if not self.params.get("password"):
            return None
        return httpx.BasicAuth(str(self.params.get("username") or ""), str(self.params["password"]))

    async def _run_query_impl(self, sql: str) -> QueryResult:
        columns: list[str] = []
        records: list[list[Any]] = []

        async with httpx.AsyncClient(
            base_url=self._base_url(),
            headers=self._headers(),
            auth=self._auth(),
            transport=self.transport,
        ) as client:
            response = await client.post("/v1/statement", content=sql.encode())
            while True:
                response.raise_for_status()
                payload = response.json()

                if payload.get("error"):
                    error = payload["error"]
                    raise PrestoQueryError(error.get("message") or str(error))
                if not columns and payload.get("columns"):
                    columns = [column["name"] for column in payload["columns"]]
                records.extend(payload.get("data") or [])

                next_uri = payload.get("nextUri")
                if not next_uri:
                    break
                response = await client.get(next_uri)

        return build_query_result(columns, records)

    def _information_schema_query(self, scope: str | None) -> str:
        catalog = self.params.get("catalog")
        source = f"{catalog}.information_schema.columns" if catalog else "information_schema.columns"
        return (
            "SELECT table_catalog, table_schema, table_name, column_name, data_type\n"
            f"FROM {source}\n"
            "WHERE table_schema NOT IN ('information_schema')\n"
            "ORDER BY table_schema, table_name, ordinal_position"
        )
