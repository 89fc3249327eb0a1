from sourcelink.repositories.datasource_repository import DataSourceRepository
from sourcelink.repositories.document_store import DocumentStore, SqlAlchemyDocumentStore
from sourcelink.repositories.information_schema_repository import (
    InformationSchemaColumnsRepository,
    InformationSchemaRepository,
)

__all__ = [
    "DataSourceRepository",
    "DocumentStore",
    "InformationSchemaColumnsRepository",
    "InformationSchemaRepository",
    "SqlAlchemyDocumentStore",
]
