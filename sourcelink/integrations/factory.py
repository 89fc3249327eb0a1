"""Integration factory with registry pattern for creating backend drivers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Type

from sourcelink.exceptions.base import ConfigurationError
from sourcelink.exceptions.datasource import UnknownSourceTypeError
from sourcelink.integrations.base import SourceIntegration
from sourcelink.integrations.drivers import (
    AthenaIntegration,
    BigQueryIntegration,
    ClickHouseIntegration,
    DatabricksIntegration,
    GoogleAnalyticsIntegration,
    MixpanelIntegration,
    MssqlIntegration,
    MysqlIntegration,
    PostgresIntegration,
    PrestoIntegration,
    RedshiftIntegration,
    SnowflakeIntegration,
)
from sourcelink.integrations.types import DataSourceType
from sourcelink.logging import get_logger
from sourcelink.security.credentials import decrypt_datasource_params

if TYPE_CHECKING:
    from sourcelink.schemas.datasource import DataSourceRecord

logger = get_logger(__name__)

DEFAULT_INTEGRATIONS: tuple[Type[SourceIntegration], ...] = (
    AthenaIntegration,
    BigQueryIntegration,
    ClickHouseIntegration,
    DatabricksIntegration,
    GoogleAnalyticsIntegration,
    MixpanelIntegration,
    MssqlIntegration,
    MysqlIntegration,
    PostgresIntegration,
    PrestoIntegration,
    RedshiftIntegration,
    SnowflakeIntegration,
)


class IntegrationRegistry:
    """Registry mapping every data source type to its driver class."""

    def __init__(self, register_defaults: bool = True) -> None:
        self._integrations: dict[DataSourceType, Type[SourceIntegration]] = {}
        if register_defaults:
            self._register_default_integrations()

    def _register_default_integrations(self) -> None:
        """Register built-in drivers and verify that no type is left without one."""
        for integration_class in DEFAULT_INTEGRATIONS:
            self.register(integration_class.SOURCE_TYPE, integration_class)

        missing = [source_type.value for source_type in DataSourceType if source_type not in self._integrations]
        if missing:
            raise ConfigurationError(f"No driver registered for data source types: {', '.join(missing)}")

        logger.info("Registered default integrations", integrations=self.list_types())

    def register(self, source_type: DataSourceType, integration_class: Type[SourceIntegration]) -> None:
        """Register a driver class.

        Args:
            source_type: Data source type served by the driver
            integration_class: Driver class that extends SourceIntegration

        """
        if source_type in self._integrations:
            logger.warning(
                "Overwriting existing integration",
                source_type=source_type.value,
                old_class=self._integrations[source_type].__name__,
                new_class=integration_class.__name__,
            )

        self._integrations[source_type] = integration_class
        logger.debug(
            "Registered integration",
            source_type=source_type.value,
            integration_class=integration_class.__name__,
        )

    def get(self, source_type: DataSourceType | str) -> Type[SourceIntegration] | None:
        try:
            return self._integrations.get(DataSourceType(source_type))
        except ValueError:
            return None

    def list_types(self) -> list[str]:
        return [source_type.value for source_type in self._integrations]

    def is_registered(self, source_type: DataSourceType | str) -> bool:
        return self.get(source_type) is not None


# Global registry instance
_registry = IntegrationRegistry()


def get_registry() -> IntegrationRegistry:
    """Get the global integration registry."""
    return _registry


def build_integration(
    source_type: DataSourceType | str,
    encrypted_params: str,
    settings: dict[str, Any] | None = None,
) -> SourceIntegration:
    """Decrypt params and instantiate the driver for ``source_type``.

    Args:
        source_type: Data source type
        encrypted_params: Ciphertext produced by the credential codec
        settings: Free-form per-backend settings

    Returns:
        Driver instance holding the decrypted params

    Raises:
        UnknownSourceTypeError: If no driver is registered for ``source_type``
        DecryptionError: If the params cannot be decrypted

    """
    integration_class = _registry.get(source_type)
    if integration_class is None:
        available = _registry.list_types()
        logger.error("Unknown data source type", source_type=str(source_type), available_types=available)
        raise UnknownSourceTypeError(str(getattr(source_type, "value", source_type)), available_types=available)

    params = decrypt_datasource_params(encrypted_params)
    return integration_class(params, settings)


def get_source_integration_object(datasource: DataSourceRecord) -> SourceIntegration:
    """Create the driver for a stored data source.

    The returned driver carries the data source's organization and id so
    that downstream logging and persistence can be scoped without passing
    the record around.

    Args:
        datasource: Stored data source record

    Returns:
        Driver instance, not yet connected

    Raises:
        UnknownSourceTypeError: If no driver is registered for the record's type
        DecryptionError: If the params cannot be decrypted

    """
    integration = build_integration(
        datasource.type,
        datasource.params,
        datasource.settings.model_dump(exclude_none=True),
    )
    integration.organization = datasource.organization
    integration.datasource = datasource.id

    logger.debug(
        "Integration created",
        source_type=integration.source_type,
        integration_class=type(integration).__name__,
        datasource_id=datasource.id,
        organization=datasource.organization,
    )
    return integration


def register_integration(source_type: DataSourceType, integration_class: Type[SourceIntegration]) -> None:
    """Register a custom driver class in the global registry."""
    _registry.register(source_type, integration_class)
