"""
Unit tests for DataSourceService.
"""

import pytest

from sourcelink.exceptions import CapabilityUnsupportedError, ConfigurationError, ConnectionTestFailedError
from sourcelink.integrations.types import DataSourceType
from sourcelink.schemas.information_schema import Database
from sourcelink.security.credentials import decrypt_datasource_params
from sourcelink.services.datasource_service import DataSourceService

from tests.conftest import ConnectOnlyIntegration


@pytest.mark.unit
class TestTestQuery:
    """Tests for DataSourceService.test_query"""

    async def test_returns_rows_duration_and_the_bounded_sql(self, make_datasource, canned_integration):
        service = DataSourceService(integration_factory=lambda datasource: canned_integration)

        result = await service.test_query(make_datasource(), "SELECT * FROM orders")

        assert result["sql"] == "WITH __table AS (\nSELECT * FROM orders\n)\nSELECT * FROM __table LIMIT 5"
        assert len(result["results"]) == 4
        assert result["duration"] >= 0
        assert canned_integration.executed == [result["sql"]]

    async def test_backend_failure_is_returned_with_the_sql(self, make_datasource, canned_integration):
        canned_integration.error = RuntimeError("permission denied for table orders")
        service = DataSourceService(integration_factory=lambda datasource: canned_integration)

        result = await service.test_query(make_datasource(), "SELECT * FROM orders")

        assert result == {
            "error": "permission denied for table orders",
            "sql": "WITH __table AS (\nSELECT * FROM orders\n)\nSELECT * FROM __table LIMIT 5",
        }

    async def test_failures_are_not_retried(self, make_datasource, canned_integration):
        canned_integration.error = RuntimeError("boom")
        service = DataSourceService(integration_factory=lambda datasource: canned_integration)

        await service.test_query(make_datasource(), "SELECT 1")

        assert len(canned_integration.executed) == 1

    async def test_unsupported_driver_fails_before_any_call(self, make_datasource):
        integration = ConnectOnlyIntegration({})
        service = DataSourceService(integration_factory=lambda datasource: integration)

        with pytest.raises(CapabilityUnsupportedError):
            await service.test_query(make_datasource(type=DataSourceType.MIXPANEL), "SELECT 1")

        assert not integration.connected


@pytest.mark.unit
class TestGenerateInformationSchema:
    """Tests for DataSourceService.generate_information_schema"""

    async def test_returns_the_formatted_tree(self, make_datasource, canned_integration):
        service = DataSourceService(integration_factory=lambda datasource: canned_integration)

        result = await service.generate_information_schema(make_datasource())

        tree = result["information_schema"]
        assert all(isinstance(database, Database) for database in tree)
        assert [schema.schema_name for schema in tree[0].schemas] == ["public", "analytics"]

    async def test_unsupported_driver_returns_an_empty_schema(self, make_datasource):
        service = DataSourceService(integration_factory=lambda datasource: ConnectOnlyIntegration({}))

        result = await service.generate_information_schema(make_datasource(type=DataSourceType.MIXPANEL))

        assert result == {"information_schema": []}

    async def test_backend_failure_returns_an_error(self, make_datasource, canned_integration):
        canned_integration.error = RuntimeError("warehouse suspended")
        service = DataSourceService(integration_factory=lambda datasource: canned_integration)

        result = await service.generate_information_schema(make_datasource())

        assert result == {"error": "warehouse suspended"}

    async def test_project_id_scopes_discovery(self, make_datasource, canned_integration):
        scopes = []

        async def get_information_schema(scope=None, timeout=None):
            scopes.append(scope)
            return []

        canned_integration.params["project_id"] = "acme-prod"
        canned_integration.get_information_schema = get_information_schema
        service = DataSourceService(integration_factory=lambda datasource: canned_integration)

        await service.generate_information_schema(make_datasource())

        assert scopes == ["acme-prod"]


@pytest.mark.unit
class TestConnectionAndParams:
    """Tests for connection testing, display params and param updates"""

    async def test_connection_failures_propagate(self, make_datasource, canned_integration):
        canned_integration.error = OSError("no route to host")
        service = DataSourceService(integration_factory=lambda datasource: canned_integration)

        with pytest.raises(ConnectionTestFailedError):
            await service.test_datasource_connection(make_datasource())

    async def test_connection_success(self, make_datasource, canned_integration):
        service = DataSourceService(integration_factory=lambda datasource: canned_integration)

        await service.test_datasource_connection(make_datasource())

        assert canned_integration.executed == ["SELECT 1"]

    def test_display_params_are_redacted(self, make_datasource):
        service = DataSourceService()

        params = service.get_display_params(make_datasource(params={"host": "db", "password": "hunter2"}))

        assert params == {"host": "db", "password": ""}

    async def test_update_params_keeps_blank_secrets(self, make_datasource, document_store):
        service = DataSourceService(document_store=document_store)
        datasource = make_datasource(params={"host": "old", "password": "hunter2"})

        ciphertext = await service.update_datasource_params(datasource, {"host": "new", "password": ""})

        assert decrypt_datasource_params(ciphertext) == {"host": "new", "password": "hunter2"}
        datasource_id, organization, update = document_store.updates[0]
        assert (datasource_id, organization) == (datasource.id, datasource.organization)
        assert update.params == ciphertext
        assert update.settings is None

    async def test_update_params_requires_a_document_store(self, make_datasource):
        with pytest.raises(ConfigurationError):
            await DataSourceService().update_datasource_params(make_datasource(), {"host": "new"})
