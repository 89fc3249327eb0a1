"""
Unit tests for the HTTP-based drivers against mocked transports.
"""

import json

import httpx
import pytest

from sourcelink.exceptions import ConnectionTestFailedError, QueryExecutionError
from sourcelink.integrations.drivers import GoogleAnalyticsIntegration, MixpanelIntegration, PrestoIntegration
from sourcelink.integrations.types import DataSourceType


@pytest.mark.unit
class TestPrestoIntegration:
    """Tests for the Presto/Trino statement protocol"""

    @staticmethod
    def _transport(requests):
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "POST":
                return httpx.Response(
                    200,
                    json={
                        "id": "q1",
                        "columns": [{"name": "id"}, {"name": "name"}],
                        "data": [[1, "a"]],
                        "nextUri": "http://presto:8080/v1/statement/q1/1",
                    },
                )
            return httpx.Response(200, json={"id": "q1", "data": [[2, "b"]]})

        return httpx.MockTransport(handler)

    async def test_follows_next_uri_and_collects_rows(self):
        requests = []
        integration = PrestoIntegration({"host": "presto", "port": 8080, "username": "bob", "catalog": "hive"})
        integration.transport = self._transport(requests)

        result = await integration.run_query("SELECT id, name FROM users")

        assert result["columns"] == ["id", "name"]
        assert result["rows"] == [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]
        assert [request.method for request in requests] == ["POST", "GET"]
        assert requests[0].url.path == "/v1/statement"
        assert requests[0].headers["X-Presto-User"] == "bob"
        assert requests[0].headers["X-Presto-Catalog"] == "hive"
        assert requests[0].content == b"SELECT id, name FROM users"

    async def test_trino_engine_uses_trino_headers(self):
        requests = []
        integration = PrestoIntegration({"host": "presto", "engine": "trino", "username": "bob"})
        integration.transport = self._transport(requests)

        await integration.run_query("SELECT 1")

        assert requests[0].headers["X-Trino-User"] == "bob"
        assert "X-Presto-User" not in requests[0].headers

    async def test_statement_error_is_wrapped(self):
        integration = PrestoIntegration({"host": "presto"})
        integration.transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"id": "q1", "error": {"message": "Table not found"}})
        )

        with pytest.raises(QueryExecutionError, match="Table not found"):
            await integration.run_query("SELECT * FROM nope")

    def test_information_schema_is_read_from_the_catalog(self):
        sql = PrestoIntegration({"catalog": "hive"})._information_schema_query(None)

        assert "FROM hive.information_schema.columns" in sql


@pytest.mark.unit
class TestMixpanelIntegration:
    """Tests for the Mixpanel JQL driver"""

    async def test_runs_jql_with_basic_auth(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[{"key": ["signup"], "value": 3}, {"key": ["login"], "value": 7}])

        integration = MixpanelIntegration({"username": "svc", "secret": "s3cr3t", "project_id": 42, "server": "eu"})
        integration.transport = httpx.MockTransport(handler)

        result = await integration.run_query("function main() { return []; }")

        assert result["columns"] == ["key", "value"]
        assert result["row_count"] == 2
        assert requests[0].url.host == "eu.mixpanel.com"
        assert requests[0].url.path == "/api/2.0/jql"
        assert requests[0].headers["Authorization"].startswith("Basic ")
        assert b"project_id=42" in requests[0].content

    async def test_scalar_results_land_in_a_value_column(self):
        integration = MixpanelIntegration({"secret": "s"})
        integration.transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[12]))

        result = await integration.run_query("function main() {}")

        assert result["rows"] == [{"value": 12}]

    async def test_rejected_credentials_fail_the_connection_test(self):
        integration = MixpanelIntegration({"secret": "wrong"})
        integration.transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "bad auth"}))

        with pytest.raises(ConnectionTestFailedError):
            await integration.test_connection()


@pytest.mark.unit
class TestGoogleAnalyticsIntegration:
    """Tests for the Reporting API driver"""

    async def test_refreshes_token_and_flattens_reports(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.host == "oauth2.googleapis.com":
                return httpx.Response(200, json={"access_token": "tok"})
            return httpx.Response(
                200,
                json={
                    "reports": [
                        {
                            "columnHeader": {
                                "dimensions": ["ga:date"],
                                "metricHeader": {"metricHeaderEntries": [{"name": "ga:users"}]},
                            },
                            "data": {"rows": [{"dimensions": ["20240101"], "metrics": [{"values": ["10"]}]}]},
                        }
                    ]
                },
            )

        integration = GoogleAnalyticsIntegration({"view": "123", "refresh_token": "r"})
        integration.transport = httpx.MockTransport(handler)

        result = await integration.run_query(json.dumps({"metrics": [{"expression": "ga:users"}]}))

        assert result["rows"] == [{"ga:date": "20240101", "ga:users": "10"}]
        assert requests[1].headers["Authorization"] == "Bearer tok"
        assert json.loads(requests[1].content)["reportRequests"][0]["viewId"] == "123"

    def test_source_type(self):
        assert GoogleAnalyticsIntegration({}).SOURCE_TYPE == DataSourceType.GOOGLE_ANALYTICS
