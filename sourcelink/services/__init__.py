from sourcelink.services.datasource_service import DataSourceService
from sourcelink.services.schema_sync import InformationSchemaSynchronizer

__all__ = [
    "DataSourceService",
    "InformationSchemaSynchronizer",
]
