from sourcelink.schemas.datasource import DataSourceRecord, DataSourceSettings, DataSourceUpdate
from sourcelink.schemas.information_schema import (
    Column,
    Database,
    InformationSchemaColumnsDocument,
    InformationSchemaDocument,
    Schema,
    Table,
)
from sourcelink.schemas.sync import SyncResult, SyncStatus

__all__ = [
    "Column",
    "Database",
    "DataSourceRecord",
    "DataSourceSettings",
    "DataSourceUpdate",
    "InformationSchemaColumnsDocument",
    "InformationSchemaDocument",
    "Schema",
    "SyncResult",
    "SyncStatus",
    "Table",
]
