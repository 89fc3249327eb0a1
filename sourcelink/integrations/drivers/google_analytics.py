"""Google Analytics (Universal Analytics) driver over the Reporting API v4."""

import json
from typing import Any

import httpx

from sourcelink.config import settings
from sourcelink.integrations.base import QueryIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult

TOKEN_URL = "https://oauth2.googleapis.com/token"
REPORTS_URL = "https://analyticsreporting.googleapis.com/v4/reports:batchGet"


class GoogleAnalyticsIntegration(QueryIntegration):
    """Google Analytics driver.

    Authenticates with a stored OAuth ``refresh_token`` and the process-wide
    OAuth client. Queries are Reporting API ``reportRequests`` encoded as
    JSON; ``view_id`` defaults to the stored ``view`` param.
    """

    SOURCE_TYPE = DataSourceType.GOOGLE_ANALYTICS
    SENSITIVE_PARAM_KEYS = ("refresh_token",)

    transport: httpx.AsyncBaseTransport | None = None

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            TOKEN_URL,
            data={
                "client_id": settings.GOOGLE_OAUTH_CLIENT_ID,
                "client_secret": settings.GOOGLE_OAUTH_CLIENT_SECRET,
                "refresh_token": self.params.get("refresh_token") or "",
                "grant_type": "refresh_token",
            },
        )
        response.raise_for_status()
        return response.json()["access_token"]

    async def _test_connection_impl(self) -> None:
        async with httpx.AsyncClient(transport=self.transport) as client:
            await self._access_token(client)

    def _report_requests(self, query: str) -> list[dict[str, Any]]:
        requests = json.loads(query)
        if isinstance(requests, dict):
            requests = requests.get("reportRequests", [requests])
        for request in requests:
            request.setdefault("viewId", str(self.params.get("view") or ""))
        return requests

    async def _run_query_impl(self, sql: str) -> QueryResult:
        report_requests = self._report_requests(sql)

        async with httpx.AsyncClient(transport=self.transport) as client:
            token = await self._access_token(client)
            response = await client.post(
                REPORTS_URL,
                json={"reportRequests": report_requests},
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            reports = response.json().get("reports", [])

        columns: list[str] = []
        records: list[list[Any]] = []
        for report in reports:
            header = report.get("columnHeader", {})
            if not columns:
                metrics = header.get("metricHeader", {}).get("metricHeaderEntries", [])
                columns = list(header.get("dimensions", [])) + [metric["name"] for metric in metrics]
            for row in report.get("data", {}).get("rows", []):
                values = row.get("metrics", [{}])[0].get("values", [])
                records.append(list(row.get("dimensions", [])) + list(values))

        return build_query_result(columns, records)
