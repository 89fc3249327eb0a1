"""Connectivity, ad-hoc query and schema discovery over stored data sources."""

from typing import Any, Callable, Optional

from opentelemetry import trace

from sourcelink.exceptions.base import ConfigurationError, SourceLinkError
from sourcelink.exceptions.datasource import CapabilityUnsupportedError
from sourcelink.integrations.base import SourceIntegration
from sourcelink.integrations.capabilities import SupportsInformationSchema, SupportsTestQuery
from sourcelink.integrations.factory import get_source_integration_object
from sourcelink.integrations.params import get_non_sensitive_params, merge_params
from sourcelink.integrations.types import IntegrationCapability
from sourcelink.logging import get_logger
from sourcelink.repositories.document_store import DocumentStore
from sourcelink.schemas.datasource import DataSourceRecord, DataSourceUpdate
from sourcelink.schemas.information_schema import Database
from sourcelink.security.credentials import encrypt_params

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)

IntegrationFactory = Callable[[DataSourceRecord], SourceIntegration]


def error_message(error: BaseException) -> str:
    """Human-readable message of an error, without the error code prefix."""
    if isinstance(error, SourceLinkError):
        return error.message
    return str(error) or type(error).__name__


class DataSourceService:
    """Dispatches operations on a stored data source to its driver.

    A fresh driver is built for every call and discarded afterwards.
    """

    def __init__(
        self,
        integration_factory: IntegrationFactory = get_source_integration_object,
        document_store: Optional[DocumentStore] = None,
    ) -> None:
        """Initialize the service.

        Args:
            integration_factory: Builds a stamped driver from a data source record
            document_store: Store used to persist merged params

        """
        self._integration_factory = integration_factory
        self._document_store = document_store

    def get_integration(self, datasource: DataSourceRecord) -> SourceIntegration:
        return self._integration_factory(datasource)

    async def test_datasource_connection(self, datasource: DataSourceRecord, timeout: Optional[float] = None) -> None:
        """Test connectivity to a data source.

        Raises:
            BackendExecutionError: If the backend cannot be reached
            DecryptionError: If the stored params cannot be decrypted

        """
        with tracer.start_as_current_span("datasource_service_test_connection") as span:
            span.set_attribute("datasource.id", datasource.id)
            span.set_attribute("datasource.type", datasource.type.value)

            integration = self.get_integration(datasource)
            await integration.test_connection(timeout=timeout)

    async def test_query(
        self,
        datasource: DataSourceRecord,
        query: str,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Run a caller's raw query, bounded to a few sample rows.

        Returns:
            ``{"results", "duration", "sql"}`` on success or ``{"error", "sql"}``
            when the backend fails; ``sql`` is the bounded query that was run

        Raises:
            CapabilityUnsupportedError: If the driver cannot run test queries

        """
        with tracer.start_as_current_span("datasource_service_test_query") as span:
            span.set_attribute("datasource.id", datasource.id)
            span.set_attribute("datasource.type", datasource.type.value)

            integration = self.get_integration(datasource)
            if not isinstance(integration, SupportsTestQuery):
                raise CapabilityUnsupportedError(
                    IntegrationCapability.TEST_QUERY.value,
                    source_type=datasource.type.value,
                    message="Unable to test query.",
                )

            sql = integration.get_test_query(query)
            try:
                result = await integration.run_test_query(sql, timeout=timeout)
            except Exception as e:
                span.set_attribute("test_query.success", False)
                logger.warning(
                    "Test query failed",
                    datasource_id=datasource.id,
                    organization=datasource.organization,
                    error=error_message(e),
                )
                return {"error": error_message(e), "sql": sql}

            span.set_attribute("test_query.success", True)
            return {"results": result["results"], "duration": result["duration"], "sql": sql}

    async def discover_information_schema(
        self,
        integration: SourceIntegration,
        timeout: Optional[float] = None,
    ) -> list[Database]:
        """Fetch and normalize a driver's schema metadata.

        The driver's ``project_id`` param, when present, scopes discovery.

        Raises:
            CapabilityUnsupportedError: If the driver cannot discover schemas
            BackendExecutionError: If the backend fails

        """
        if not isinstance(integration, SupportsInformationSchema):
            raise CapabilityUnsupportedError(
                IntegrationCapability.INFORMATION_SCHEMA.value,
                source_type=integration.source_type,
            )

        raw = await integration.get_information_schema(integration.params.get("project_id"), timeout=timeout)
        return integration.format_information_schema(raw, integration.SOURCE_TYPE)

    async def generate_information_schema(
        self,
        datasource: DataSourceRecord,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Discover a data source's schema.

        Returns:
            ``{"information_schema": [...]}``, empty when the driver has no
            discovery capability, or ``{"error": message}`` when discovery fails

        """
        with tracer.start_as_current_span("datasource_service_generate_information_schema") as span:
            span.set_attribute("datasource.id", datasource.id)
            span.set_attribute("datasource.type", datasource.type.value)

            integration = self.get_integration(datasource)
            try:
                tree = await self.discover_information_schema(integration, timeout=timeout)
            except CapabilityUnsupportedError:
                span.set_attribute("information_schema.supported", False)
                return {"information_schema": []}
            except Exception as e:
                logger.warning(
                    "Information schema discovery failed",
                    datasource_id=datasource.id,
                    organization=datasource.organization,
                    error=error_message(e),
                )
                return {"error": error_message(e)}

            span.set_attribute("information_schema.databases", len(tree))
            return {"information_schema": tree}

    def get_display_params(self, datasource: DataSourceRecord) -> dict[str, Any]:
        """Decrypted params with every sensitive value blanked."""
        return get_non_sensitive_params(self.get_integration(datasource))

    async def update_datasource_params(self, datasource: DataSourceRecord, new_params: dict[str, Any]) -> str:
        """Merge user-submitted params into the stored ones and persist them.

        Sensitive keys submitted empty keep their stored value.

        Returns:
            The new ciphertext, already written to the document store

        Raises:
            ConfigurationError: If the service has no document store

        """
        if self._document_store is None:
            raise ConfigurationError("A document store is required to update data source params")

        with tracer.start_as_current_span("datasource_service_update_params") as span:
            span.set_attribute("datasource.id", datasource.id)

            integration = self.get_integration(datasource)
            merged = merge_params(integration, new_params)
            ciphertext = encrypt_params(merged)

            await self._document_store.update_data_source(
                datasource.id,
                datasource.organization,
                DataSourceUpdate(params=ciphertext),
            )

            logger.info(
                "Data source params updated",
                datasource_id=datasource.id,
                organization=datasource.organization,
                keys=sorted(new_params),
            )
            return ciphertext
