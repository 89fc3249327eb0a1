"""Mixpanel driver over the JQL HTTP API."""

from datetime import date
from typing import Any

import httpx

from sourcelink.integrations.base import QueryIntegration, build_query_result
from sourcelink.integrations.types import DataSourceType, QueryResult

# Counts today's events; enough to prove the credentials work
CONNECTION_TEST_SCRIPT = """function main() {{
  return Events({{from_date: "{today}", to_date: "{today}"}}).reduce(mixpanel.reducer.count());
}}"""


class MixpanelIntegration(QueryIntegration):
    """Mixpanel driver.

    Runs JQL scripts only. Mixpanel has no SQL surface, so bounded test
    queries and information schema discovery are not available.
    """

    SOURCE_TYPE = DataSourceType.MIXPANEL
    SENSITIVE_PARAM_KEYS = ("secret",)

    transport: httpx.AsyncBaseTransport | None = None

    def _base_url(self) -> str:
        if self.params.get("server") == "eu":
            return "https://eu.mixpanel.com"
        return "https://mixpanel.com"

    async def _test_connection_impl(self) -> None:
        await self._run_query_impl(CONNECTION_TEST_SCRIPT.format(today=date.today().isoformat()))

    async def _run_query_impl(self, sql: str) -> QueryResult:
        data: dict[str, Any] = {"script": sql}
        if self.params.get("project_id"):
            data["project_id"] = str(self.params["project_id"])

        async with httpx.AsyncClient(
            base_url=self._base_url(),
            auth=httpx.BasicAuth(str(self.params.get("username") or ""), str(self.params.get("secret") or "")),
            transport=self.transport,
        ) as client:
            response = await client.post("/api/2.0/jql", data=data)
            response.raise_for_status()
            values = response.json()

        if not isinstance(values, list):
            values = [values]
        if values and all(isinstance(value, dict) for value in values):
            columns = list(dict.fromkeys(key for value in values for key in value))
            return build_query_result(columns, ([value.get(column) for column in columns] for value in values))
        return build_query_result(["value"], ([value] for value in values))
