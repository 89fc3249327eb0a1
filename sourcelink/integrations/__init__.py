"""Backend drivers behind one capability-based contract."""

from sourcelink.integrations.types import DataSourceType, IntegrationCapability

__all__ = ["DataSourceType", "IntegrationCapability"]
