"""Document store boundary used by the schema synchronization pipeline.

Each call is atomic on its own; there are no multi-document transactions.
Callers that need all-or-nothing behaviour across several calls compensate
explicitly.
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from sqlalchemy.exc import SQLAlchemyError

from sourcelink.database.session import DatabaseSessionManager
from sourcelink.exceptions.base import DatabaseError
from sourcelink.logging import get_logger
from sourcelink.repositories.datasource_repository import DataSourceRepository
from sourcelink.repositories.information_schema_repository import (
    InformationSchemaColumnsRepository,
    InformationSchemaRepository,
)
from sourcelink.schemas.datasource import DataSourceUpdate
from sourcelink.schemas.information_schema import Column, Database, InformationSchemaColumnsDocument

logger = get_logger(__name__)


@runtime_checkable
class DocumentStore(Protocol):
    async def create_information_schema_columns(
        self,
        columns: Sequence[Column],
        organization: str,
    ) -> InformationSchemaColumnsDocument: ...

    async def delete_information_schema_columns(self, columns_ids: Sequence[str], organization: str) -> int: ...

    async def create_information_schema(
        self,
        databases: Sequence[Database],
        organization: str,
        datasource_id: str,
    ) -> str: ...

    async def update_data_source(self, datasource_id: str, organization: str, update: DataSourceUpdate) -> None: ...


class SqlAlchemyDocumentStore:
    """DocumentStore backed by the SQLAlchemy repositories, one session per call."""

    def __init__(self, session_manager: DatabaseSessionManager) -> None:
        self._session_manager = session_manager

    async def create_information_schema_columns(
        self,
        columns: Sequence[Column],
        organization: str,
    ) -> InformationSchemaColumnsDocument:
        try:
            async with self._session_manager.get_session() as session:
                document = await InformationSchemaColumnsRepository(session).create(organization, columns)
                return InformationSchemaColumnsDocument.model_validate(document)
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to create information schema columns: {e}",
                operation="create_information_schema_columns",
            ) from e

    async def delete_information_schema_columns(self, columns_ids: Sequence[str], organization: str) -> int:
        try:
            async with self._session_manager.get_session() as session:
                return await InformationSchemaColumnsRepository(session).delete_many(columns_ids, organization)
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to delete information schema columns: {e}",
                operation="delete_information_schema_columns",
            ) from e

    async def create_information_schema(
        self,
        databases: Sequence[Database],
        organization: str,
        datasource_id: str,
    ) -> str:
        try:
            async with self._session_manager.get_session() as session:
                document = await InformationSchemaRepository(session).create(organization, datasource_id, databases)
                return document.id
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to create information schema: {e}",
                operation="create_information_schema",
            ) from e

    async def update_data_source(self, datasource_id: str, organization: str, update: DataSourceUpdate) -> None:
        """Apply a partial update to a data source.

        Raises:
            DataSourceNotFoundError: If the data source does not exist in the organization
            DatabaseError: If the store rejects the write

        """
        try:
            async with self._session_manager.get_session() as session:
                await DataSourceRepository(session).update(datasource_id, organization, update)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to update data source: {e}", operation="update_data_source") from e
